from __future__ import annotations
import sys, datetime as _dt, json
import contextvars
from contextlib import contextmanager
from typing import Optional, Dict, Any, Iterator


_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class ConsoleLogger:
    """Minimal structured logger writing one line per record to stderr.

    Example:
        ```python
        logger = ConsoleLogger(level="DEBUG", json_output=True)
        with use_logger(logger):
            with ChainScope() as s:
                ...
        ```
    """
    def __init__(self, name: str = "scopekit", level: str = "INFO", json_output: bool = False, context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.level = _LEVELS.get(level.upper(), 20)
        self.json_output = json_output
        self.context = dict(context or {})

    def set_level(self, level: str) -> None:
        self.level = _LEVELS.get(level.upper(), self.level)

    def bind(self, **fields: Any) -> "ConsoleLogger":
        ctx = dict(self.context); ctx.update(fields)
        return ConsoleLogger(self.name, level=self.level_name, json_output=self.json_output, context=ctx)

    @property
    def level_name(self) -> str:
        for k, v in _LEVELS.items():
            if v == self.level: return k
        return "INFO"

    def enabled(self, level: str) -> bool:
        return _LEVELS[level] >= self.level

    def _log(self, level: str, msg: str, **fields: Any) -> None:
        if not self.enabled(level):
            return
        ts = _dt.datetime.now(_dt.timezone.utc).isoformat()
        data = {
            "ts": ts,
            "name": self.name,
            "level": level,
            "msg": msg,
        }
        all_fields: Dict[str, Any] = {}
        all_fields.update(self.context)
        all_fields.update(fields)
        if self.json_output:
            if all_fields:
                data["fields"] = all_fields
            print(json.dumps(data, separators=(",", ":"), default=repr), file=sys.stderr)
        else:
            extras = "".join([f" {k}={v}" for k, v in sorted(all_fields.items())]) if all_fields else ""
            print(f"[{ts}] {self.name} {level}: {msg}{extras}", file=sys.stderr)

    def debug(self, msg: str, **fields: Any) -> None: self._log("DEBUG", msg, **fields)
    def info(self, msg: str, **fields: Any) -> None: self._log("INFO", msg, **fields)
    def warn(self, msg: str, **fields: Any) -> None: self._log("WARN", msg, **fields)
    def error(self, msg: str, **fields: Any) -> None: self._log("ERROR", msg, **fields)


def safe_repr(obj: Any) -> str:
    """``repr(obj)``, falling back to ``object.__repr__`` when the object's own ``__repr__`` fails."""
    try:
        return repr(obj)
    except Exception:
        return object.__repr__(obj)


_NO_HANDLE = object()


def debug_event(msg: str, scope: str, handle: Any = _NO_HANDLE, **fields: Any) -> None:
    """Log a scope lifecycle event at DEBUG, formatting ``handle`` only if DEBUG is enabled."""
    logger = get_logger()
    if not logger.enabled("DEBUG"):
        return
    if handle is not _NO_HANDLE:
        fields["handle"] = safe_repr(handle)
    logger.debug(msg, scope=scope, **fields)


_logger: contextvars.ContextVar[ConsoleLogger] = contextvars.ContextVar('scopekit_logger', default=ConsoleLogger())


def get_logger() -> ConsoleLogger:
    return _logger.get()


def set_logger(logger: ConsoleLogger) -> contextvars.Token:
    """Install ``logger`` for the current context; pass the token to ``reset_logger`` to undo."""
    return _logger.set(logger)


def reset_logger(token: contextvars.Token) -> None:
    _logger.reset(token)


@contextmanager
def use_logger(logger: ConsoleLogger) -> Iterator[ConsoleLogger]:
    token = _logger.set(logger)
    try:
        yield logger
    finally:
        _logger.reset(token)
