"""
Structured JSON logging for the credit engine.

Every record is one JSON object per line.  Services log snake_case event
names (``loan_payment_recorded``, ``optimistic_conflict_detected``) and
pass the figures as ``extra``; the unit of work binds the operation and
the entity it touches, and services annotate the bound context with the
document they loaded (loan number, order and invoice numbers, farmer), so
a retry or a warning deep inside a workflow still names the loan or order
it concerns.

Engine values are serialized as text: UUIDs and Decimals via ``str``,
dates in ISO format, enums by value, and frozen DTOs as objects of their
fields.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "document_context",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import fields, is_dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# Context fields in output order.  The last five identify the business
# document an operation is working on.
CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "operation",
    "entity_type",
    "entity_id",
    "loan_number",
    "order_number",
    "invoice_number",
    "farmer_id",
    "borrower_id",
)

_DOCUMENT_FIELDS = CONTEXT_FIELDS[5:]

_context: ContextVar[dict[str, str]] = ContextVar("credit_log_context", default={})


def _merged(updates: dict[str, Any]) -> dict[str, str]:
    unknown = set(updates) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
    current = dict(_context.get())
    current.update({k: str(v) for k, v in updates.items() if v is not None})
    return current


class LogContext:
    """
    Context-local fields added to every record.

    ``bind()`` scopes fields to a ``with`` block; anything ``set()`` inside
    the block is discarded with it, so annotations made during one unit of
    work never leak into the next.
    """

    @staticmethod
    def set(**values: Any) -> None:
        """Add or replace fields; ``None`` values are ignored."""
        _context.set(_merged(values))

    @staticmethod
    def get_all() -> dict[str, str]:
        current = _context.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**values: Any) -> Iterator[type["LogContext"]]:
        token = _context.set(_merged(values))
        try:
            yield LogContext
        finally:
            _context.reset(token)


def document_context(document: Any) -> dict[str, str]:
    """
    Identifying fields of a loan, order or credit request DTO.

    Only attributes the document actually has and that are set are
    returned, ready for ``LogContext.set(**...)``.
    """
    found: dict[str, str] = {}
    for name in _DOCUMENT_FIELDS:
        value = getattr(document, name, None)
        if value is not None:
            found[name] = str(value)
    return found


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in fields(value)}
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        payload["exc_code"] = code
        payload["exc_retryable"] = bool(getattr(exc, "retryable", False))
    for key, val in vars(exc).items():
        if not key.startswith("_") and key not in ("args", "code"):
            payload[f"exc_{key}"] = val
    return payload


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        payload.update(
            (key, val)
            for key, val in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "credit_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the credit_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Send credit_kernel records to one JSON handler (idempotent).

    ``level`` may be a number or a level name such as ``"DEBUG"``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Drop handlers and configuration. For tests."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
