from __future__ import annotations
import traceback
from typing import Any, List, Optional
from .logger import get_logger, safe_repr


class ScopeError(Exception):
    """Base class for errors raised by scopekit."""


class CloseError(ScopeError):
    """Aggregated failure raised when releasing one or more handles fails.

    The first failure met while releasing becomes the primary ``error`` (and the
    ``__cause__`` of this exception); any later failures from the same ``close()``
    call are kept, in the order they happened, in ``suppressed``.

    Example:
        ```python
        try:
            scope.close()
        except CloseError as ce:
            print(ce.render())
        ```
    """
    def __init__(self, error: BaseException, suppressed: Optional[List[BaseException]] = None):
        super().__init__(safe_repr(error))
        self.error = error
        self.suppressed: List[BaseException] = list(suppressed or [])
        self.__cause__ = error

    def render(self, indent: str = "", include_traces: bool = False) -> str:
        """Render the primary failure and its suppressed failures as an indented tree."""
        def line(s: str) -> str: return indent + s + "\n"
        out = line(f"CloseError({safe_repr(self.error)})")
        if include_traces and self.error.__traceback__:
            tb = ''.join(traceback.format_exception(type(self.error), self.error, self.error.__traceback__))
            out += ''.join(indent + '  ' + l for l in tb.splitlines(True))
        for s in self.suppressed:
            if isinstance(s, CloseError):
                out += line("  Suppressed:") + s.render(indent + "    ", include_traces)
            else:
                out += line(f"  Suppressed: {safe_repr(s)}")
        return out


class HandoffError(ScopeError, AssertionError):
    """Raised when a handle other than the one currently owned is released from a scope."""


def add_suppressed(primary: BaseException, exc: BaseException) -> None:
    # CloseError keeps its own list; anything else gets a plain attribute
    if isinstance(primary, CloseError):
        primary.suppressed.append(exc)
        return
    found = getattr(primary, "suppressed", None)
    if isinstance(found, list): found.append(exc)
    else: primary.suppressed = [exc]  # type: ignore[attr-defined]


def suppressed_of(exc: BaseException) -> List[BaseException]:
    """Return the failures attached to ``exc`` as suppressed, oldest first."""
    found = getattr(exc, "suppressed", None)
    return list(found) if isinstance(found, list) else []


def is_unrecoverable(exc: BaseException) -> bool:
    """Whether a release failure propagates as itself instead of being wrapped in CloseError."""
    return isinstance(exc, CloseError) or not isinstance(exc, Exception)


class Failures:
    """Accumulates release failures for a single ``close()`` call.

    The first recorded failure becomes the primary one (wrapped in ``CloseError``
    unless it is unrecoverable); subsequent ones are attached to it as suppressed.
    When ``handle`` is given, the failure is also logged: at DEBUG for the primary
    one, at WARN for suppressed ones. Handles are only formatted when the record
    is actually emitted, and never with a ``__repr__`` that can raise.
    """
    def __init__(self, scope: str = "Scope") -> None:
        self.scope = scope
        self.primary: Optional[BaseException] = None

    def record(self, exc: BaseException, handle: Any = None) -> None:
        if handle is not None:
            level = "WARN" if self.primary is not None else "DEBUG"
            logger = get_logger()
            if logger.enabled(level):
                emit = logger.warn if level == "WARN" else logger.debug
                emit("suppressed release failure" if level == "WARN" else "release failed", scope=self.scope, handle=safe_repr(handle), error=safe_repr(exc))
        if self.primary is None:
            self.primary = exc if is_unrecoverable(exc) else CloseError(exc)
        else:
            add_suppressed(self.primary, exc)

    def __bool__(self) -> bool:
        return self.primary is not None

    def raise_first(self) -> None:
        if self.primary is not None:
            raise self.primary
