"""
approval_kernel.logging_config -- One JSON object per log line.

Responsibility:
    Gives every module a logger under the ``approval_kernel`` namespace and
    renders records as single-line JSON.  Request-scoped fields (which
    request, which actor, which request type) ride along in a ContextVar so
    services bind them once per operation instead of repeating them on
    every call.

Invariants enforced:
    - Only the fields in ``LogContext.FIELDS`` can be bound.
    - ``LogContext.bind`` restores the previous values on exit, including
      "unset".
    - ``configure_logging`` installs exactly one handler until
      ``reset_logging`` is called.

Failure modes:
    - KeyError when binding an unknown context field.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

_ROOT = "approval_kernel"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("approval_log_context", default=_EMPTY)


class LogContext:
    """Request-scoped fields merged into every record (thread and task local)."""

    FIELDS = frozenset({"correlation_id", "request_id", "actor_id", "request_type"})

    @classmethod
    def _merged(cls, fields: Mapping[str, Any]) -> Mapping[str, str]:
        unknown = set(fields) - cls.FIELDS
        if unknown:
            raise KeyError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_bound.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Bind fields until cleared.  None values leave a field untouched."""
        _bound.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_bound.get())

    @classmethod
    def clear(cls) -> None:
        _bound.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        token = _bound.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _bound.reset(token)


# Attributes every LogRecord carries; anything else came from ``extra=``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # kernel errors keep their context (ids, statuses) as public attributes
    for name, value in vars(exc).items():
        if name != "code" and not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """``ts``, ``level``, ``logger``, ``message``, bound context, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_bound.get(),
        }
        line.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in line
        )
        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=_jsonable)


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.x")`` -> ``approval_kernel.services.x``."""
    return logging.getLogger(f"{_ROOT}.{name}")


_install_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``approval_kernel`` logger once."""
    global _installed
    with _install_lock:
        if _installed is not None:
            return
        _installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        _installed.setFormatter(StructuredFormatter())

        root = logging.getLogger(_ROOT)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(_installed)


def reset_logging() -> None:
    """Detach the handler and restore stdlib defaults.  Used by tests."""
    global _installed
    with _install_lock:
        root = logging.getLogger(_ROOT)
        root.handlers.clear()
        root.setLevel(logging.NOTSET)
        root.propagate = True
        _installed = None
