"""
Async scopes: collect async connections into a composite, shielded cleanup.

Run: python examples/async_collect.py
"""
import anyio

from scopekit import AsyncCollectScope, CloseError


class Connection:
    def __init__(self, name: str, fail_close: bool = False):
        self.name = name; self.fail_close = fail_close
        print(f"[conn] open {name}")

    async def aclose(self) -> None:
        await anyio.sleep(0.01)
        print(f"[conn] close {self.name}")
        if self.fail_close:
            raise OSError(f"{self.name} did not close cleanly")


class Pool:
    def __init__(self):
        self.primary = None; self.replica = None; self._resources = None

    @classmethod
    async def open(cls, fail_close: bool = False) -> "Pool":
        pool = cls()
        async with AsyncCollectScope() as s:
            pool.primary = s.add(Connection("primary", fail_close))
            await anyio.sleep(0)
            pool.replica = s.add(Connection("replica"))
            pool._resources = s.release()
        return pool

    async def aclose(self) -> None:
        await self._resources.aclose()


async def main():
    pool = await Pool.open()
    await pool.aclose()  # closes replica, then primary

    pool = await Pool.open(fail_close=True)
    try:
        await pool.aclose()
    except CloseError as ce:
        print(ce.render())


if __name__ == "__main__":
    anyio.run(main)
