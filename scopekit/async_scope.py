from __future__ import annotations
import inspect
from typing import Any
import anyio
from .errors import Failures, add_suppressed
from .logger import debug_event
from .scope import ChainSlot, HandleStack, C


async def aclose_handle(handle: Any) -> None:
    """Release ``handle`` via ``aclose()`` if it has one, else via ``close()`` (awaiting its result if needed)."""
    aclose = getattr(handle, "aclose", None)
    if aclose is not None:
        await aclose(); return
    res = handle.close()
    if inspect.isawaitable(res): await res


async def _release(handle: Any, failures: Failures) -> None:
    try:
        with anyio.CancelScope(shield=True):
            await aclose_handle(handle)
    except BaseException as ex:
        failures.record(ex, handle)


class AsyncScope:
    """Async counterpart of ``Scope`` for handles released by awaiting.

    Each release is awaited in a shielded ``anyio.CancelScope`` so cancelling
    the enclosing task cannot interrupt cleanup. Ordering, failure aggregation
    and idempotence follow ``Scope``.
    """
    async def aclose(self) -> None:
        """Release every owned handle. Subclasses must override this."""
        raise NotImplementedError

    async def __aenter__(self) -> "AsyncScope":
        return self

    async def __aexit__(self, et, e, tb) -> bool:
        if e is None:
            await self.aclose()
            return False
        try:
            await self.aclose()
        except Exception as err:
            add_suppressed(e, err)
        return False


class AsyncChainScope(ChainSlot, AsyncScope):
    """``ChainScope`` for async handles.

    Example:
        ```python
        async def connect(host):
            async with AsyncChainScope() as s:
                sock = s.hook(await anyio.connect_tcp(host, 443))
                tls = s.hook(await TLSStream.wrap(sock, hostname=host))
                return s.release(tls)
        ```
    """
    async def aclose(self) -> None:
        handle = self._take()
        if handle is None: return
        failures = Failures("AsyncChainScope")
        await _release(handle, failures)
        failures.raise_first()

    async def __aenter__(self) -> "AsyncChainScope":
        return self


class AsyncWrapperScope(HandleStack, AsyncScope):
    """``WrapperScope`` for async handles: releases last-added first."""
    async def aclose(self) -> None:
        failures = self._closing()
        while self._handles:
            await _release(self._handles.pop(), failures)
        failures.raise_first()

    async def __aenter__(self) -> "AsyncWrapperScope":
        return self


class AsyncCollectScope(AsyncScope):
    """``CollectScope`` for async handles; ``release()`` returns an ``AsyncWrapperScope``."""
    def __init__(self) -> None:
        self._wrapper = AsyncWrapperScope()

    def add(self, handle: C) -> C:
        return self._wrapper.add(handle)

    async def aclose(self) -> None:
        await self._wrapper.aclose()

    def release(self) -> AsyncWrapperScope:
        wrapper, self._wrapper = self._wrapper, AsyncWrapperScope()
        debug_event("release", "AsyncCollectScope", handles=len(wrapper.handles))
        return wrapper

    async def __aenter__(self) -> "AsyncCollectScope":
        return self

    def __repr__(self) -> str:
        return f"AsyncCollectScope({self._wrapper.handles!r})"
