"""
ChainScope + CollectScope: build readers without leaking on failure.

Run: python examples/chained_readers.py
"""
import io
import os
import tempfile

from scopekit import ChainScope, CollectScope, ConsoleLogger, use_logger


def open_text(path: str) -> io.TextIOWrapper:
    # Each step wraps (and owns) the previous one; only the last hooked is closed on failure
    with ChainScope() as s:
        raw = s.hook(io.FileIO(path))
        buf = s.hook(io.BufferedReader(raw))
        text = s.hook(io.TextIOWrapper(buf, encoding="utf-8"))
        return s.release(text)


class Readers:
    """Composite owning two readers; its close() is the handed-off WrapperScope."""
    def __init__(self, first: str, second: str):
        with CollectScope() as s:
            self.first = s.add(open_text(first))
            self.second = s.add(open_text(second))
            self._resources = s.release()

    def close(self) -> None:
        self._resources.close()

    def __enter__(self): return self
    def __exit__(self, et, e, tb): self.close()


def main():
    with tempfile.TemporaryDirectory() as d:
        a = os.path.join(d, "a.txt"); b = os.path.join(d, "b.txt")
        for path, text in ((a, "first file\n"), (b, "second file\n")):
            with open(path, "w", encoding="utf-8") as f:
                f.write(text)

        with use_logger(ConsoleLogger(level="DEBUG")):
            with Readers(a, b) as r:
                print(r.first.readline().strip(), "/", r.second.readline().strip())

            # second path is missing: the first reader is closed before the error propagates
            try:
                Readers(a, os.path.join(d, "missing.txt"))
            except FileNotFoundError as ex:
                print("failed cleanly:", ex)


if __name__ == "__main__":
    main()
