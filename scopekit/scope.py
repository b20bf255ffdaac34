from __future__ import annotations
from typing import Any, List, Optional, Protocol, Tuple, TypeVar, runtime_checkable
from .errors import Failures, HandoffError, add_suppressed
from .logger import debug_event, safe_repr

@runtime_checkable
class Closable(Protocol):
    def close(self) -> Any: ...

C = TypeVar("C")


class Scope:
    """Owner of zero or more closable handles, released together by ``close()``.

    ``close()`` attempts to release every owned handle even when some releases
    fail. Failures are raised afterwards as a single ``CloseError`` whose primary
    cause is the first failure met; later failures are attached as suppressed.
    Unrecoverable failures (``KeyboardInterrupt``, ``SystemExit``, a nested
    ``CloseError``) are raised as themselves. Closing an already closed scope
    has no effect.

    Scopes are context managers: the ``with`` block calls ``close()`` on exit.
    If the block itself raised, that exception is kept and close failures are
    attached to it as suppressed.

    Handles are opaque: a scope only ever calls their ``close()``.
    """
    def close(self) -> None:
        """Release every owned handle. Subclasses must override this."""
        raise NotImplementedError

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, et, e, tb) -> bool:
        if e is None:
            self.close()
            return False
        try:
            self.close()
        except Exception as err:
            add_suppressed(e, err)
        return False


class ChainSlot:
    """Single-handle ownership shared by ``ChainScope`` and ``AsyncChainScope``."""
    def __init__(self) -> None:
        self._hooked: Optional[Any] = None

    @property
    def hooked(self) -> Optional[Any]:
        return self._hooked

    def hook(self, handle: C) -> C:
        """Take ownership of ``handle`` in place of the previously hooked one (which is not closed)."""
        self._hooked = handle
        debug_event("hook", type(self).__name__, handle)
        return handle

    def release(self, handle: C) -> C:
        """Give up ownership of ``handle`` without closing it and return it.

        Raises:
            HandoffError: If ``handle`` is not the handle currently hooked
        """
        if handle is not self._hooked:
            raise HandoffError(f"Attempted to release {safe_repr(handle)}, but what was actually hooked was {safe_repr(self._hooked)}")
        self._hooked = None
        debug_event("release", type(self).__name__, handle)
        return handle

    def _take(self) -> Optional[Any]:
        # cleared first so a failed release is never attempted twice
        handle, self._hooked = self._hooked, None
        if handle is not None:
            debug_event("close", type(self).__name__, handles=1)
        return handle

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._hooked!r})"


class HandleStack:
    """Ordered ownership shared by ``WrapperScope`` and ``AsyncWrapperScope``."""
    def __init__(self) -> None:
        self._handles: List[Any] = []

    @property
    def handles(self) -> Tuple[Any, ...]:
        return tuple(self._handles)

    def add(self, handle: C) -> C:
        self._handles.append(handle)
        debug_event("add", type(self).__name__, handle)
        return handle

    def _closing(self) -> Failures:
        if self._handles:
            debug_event("close", type(self).__name__, handles=len(self._handles))
        return Failures(type(self).__name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._handles!r})"


class ChainScope(ChainSlot, Scope):
    """Tracks a chain of handles while each one is built from the previous one.

    Only the handle hooked last is owned: it is assumed to own every handle
    hooked before it, so closing it releases the whole chain. If building any
    step fails, leaving the ``with`` block closes the last hooked handle; once
    the final handle is built, ``release`` hands it back to the caller.

    Example:
        ```python
        def open_text(path):
            with ChainScope() as s:
                raw = s.hook(io.FileIO(path))
                buf = s.hook(io.BufferedReader(raw))
                text = s.hook(io.TextIOWrapper(buf, encoding="utf-8"))
                return s.release(text)
        ```
    """
    def close(self) -> None:
        handle = self._take()
        if handle is None: return
        failures = Failures("ChainScope")
        try:
            handle.close()
        except BaseException as ex:
            failures.record(ex, handle)
        failures.raise_first()

    def __enter__(self) -> "ChainScope":
        return self


class WrapperScope(HandleStack, Scope):
    """Owns any number of handles and closes them in reverse order of addition.

    The last handle added is closed first, as it is usually the one depending on
    the handles added before it.

    Example:
        ```python
        w = WrapperScope()
        db = w.add(connect_db())
        cache = w.add(connect_cache())
        w.close()  # closes cache, then db
        ```
    """
    def close(self) -> None:
        failures = self._closing()
        while self._handles:
            handle = self._handles.pop()
            try:
                handle.close()
            except BaseException as ex:
                failures.record(ex, handle)
        failures.raise_first()

    def __enter__(self) -> "WrapperScope":
        return self


class CollectScope(Scope):
    """Collects handles while a composite object is being built.

    Handles added are closed (last first) if the ``with`` block exits before
    ``release()`` is called. ``release()`` moves everything collected into a
    ``WrapperScope`` the composite keeps as its own ``close()`` delegate.

    Example:
        ```python
        class Readers:
            def __init__(self, a, b):
                with CollectScope() as s:
                    self.first = s.add(open_text(a))
                    self.second = s.add(open_text(b))
                    self._resources = s.release()

            def close(self):
                self._resources.close()
        ```
    """
    def __init__(self) -> None:
        self._wrapper = WrapperScope()

    def add(self, handle: C) -> C:
        return self._wrapper.add(handle)

    def close(self) -> None:
        self._wrapper.close()

    def release(self) -> WrapperScope:
        """Hand every collected handle to a new owner and leave this scope empty.

        Returns:
            The ``WrapperScope`` now owning the collected handles, in the order
            they were added
        """
        wrapper, self._wrapper = self._wrapper, WrapperScope()
        debug_event("release", "CollectScope", handles=len(wrapper.handles))
        return wrapper

    def __enter__(self) -> "CollectScope":
        return self

    def __repr__(self) -> str:
        return f"CollectScope({self._wrapper.handles!r})"
