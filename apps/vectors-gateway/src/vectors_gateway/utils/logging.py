"""Logging for the Vectors Gateway service.

Every record under the `vectors_gateway` logger tree is stamped with the
current request id and, inside a `document_context` block, with the
identity of the document being processed. Production emits one JSON
object per line; other environments emit a readable single line.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from vectors_gateway.config import get_settings

ROOT_LOGGER = "vectors_gateway"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
document_var: ContextVar[Optional[Dict[str, int]]] = ContextVar("document", default=None)

_configured = False

# Attributes every LogRecord has; anything else arrived through `extra=`
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "extra_fields", "request_id", "document"}


def _context_fields() -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    request_id = request_id_var.get()
    if request_id:
        fields["request_id"] = request_id
    document = document_var.get()
    if document:
        fields.update(document)
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **_context_fields(),
        }
        entry.update(getattr(record, "extra_fields", None) or {})
        entry.update(
            {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format: `time level logger [request doc] message`."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s [%(request_id)s%(document)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_var.get() or "-"
        document = document_var.get()
        record.document = (
            f" doc={document['document_id']} kb={document['knowledge_base_id']}"
            if document
            else ""
        )
        return super().format(record)


def setup_logging(force: bool = False) -> logging.Logger:
    """Attach a stdout handler to the service logger tree (once)."""
    global _configured

    logger = logging.getLogger(ROOT_LOGGER)
    if _configured and not force:
        return logger

    settings = get_settings()
    level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.is_production else ConsoleFormatter())

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # Third-party noise
    for name in ("uvicorn", "uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.INFO if settings.debug else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    _configured = True
    logger.debug(
        f"Logging configured: level={settings.log_level}, "
        f"format={'json' if settings.is_production else 'console'}"
    )
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the service tree, e.g. `vectors_gateway.qdrant_service`."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def set_request_id(request_id: Optional[str]):
    """Bind the request id for the current context; returns the reset token."""
    return request_id_var.set(request_id)


def reset_request_id(token) -> None:
    request_id_var.reset(token)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


@contextmanager
def document_context(
    document_id: Optional[int], knowledge_base_id: int, user_id: Optional[int] = None
) -> Iterator[None]:
    """Stamp every record logged inside the block with the document identity."""
    identity = {"knowledge_base_id": knowledge_base_id}
    if document_id is not None:
        identity["document_id"] = document_id
    if user_id is not None:
        identity["user_id"] = user_id
    token = document_var.set(identity)
    try:
        yield
    finally:
        document_var.reset(token)


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Access log line for one HTTP request."""
    get_logger("http").log(
        level,
        f"{method} {path} - {status_code} - {duration_ms:.2f}ms",
        extra={
            "extra_fields": {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs,
            }
        },
    )


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> None:
    """Log an exception with its error code and structured context."""
    fields: Dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_code": getattr(error, "code", None),
        "error_message": str(error),
        "context": context or {},
        **kwargs,
    }
    get_logger("error").error(
        f"{type(error).__name__}: {error}",
        exc_info=error,
        extra={"extra_fields": fields},
    )
