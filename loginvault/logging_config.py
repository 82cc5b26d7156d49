"""
Logging setup for loginvault.

Every handler installed by ``configure_logging`` runs two filters before
formatting:

- ``RequestIdFilter`` stamps the caller's request id (a contextvar set by the
  surrounding request layer) on each record.
- ``RedactSecretsFilter`` masks credential material passed through ``extra=``
  or as mapping arguments: plaintext passwords, salted hashes, login tokens,
  reset codes and the links that embed them.

Records are rendered as JSON lines in production and as one readable line
otherwise.

Usage:
    from loginvault.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Reset code issued", extra={"user_id": str(user.id)})
"""

import json
import logging
import sys
from collections.abc import Mapping
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any, Iterator, Optional, Tuple

# Set by the request-handling layer that calls into loginvault
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REDACTED = "[redacted]"

# Keys whose values are credential material, in both the snake_case used in
# log calls and the camelCase used in notification payloads
SENSITIVE_KEYS = frozenset((
    "password", "plaintext", "new_password",
    "salted_hash", "hash",
    "token", "code", "reset_code", "resetCode",
    "login_url", "loginUrl", "reset_url", "resetUrl",
))

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "request_id", "taskName"}

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "aiosqlite")


def get_request_id() -> Optional[str]:
    """Get the current request ID from context, if set."""
    return request_id_var.get()


def redact(value: Any) -> Any:
    """Return value with every sensitive mapping entry masked, recursively."""
    if isinstance(value, Mapping):
        return {
            k: REDACTED if k in SENSITIVE_KEYS else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    return value


def extra_fields(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    """Yield the (key, value) pairs a log call passed through extra=."""
    for key, value in record.__dict__.items():
        if key not in _RECORD_ATTRS and value is not None:
            yield key, value


class RequestIdFilter(logging.Filter):
    """Filter that adds request_id to log records from context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"  # type: ignore[attr-defined]
        return True


class RedactSecretsFilter(logging.Filter):
    """Masks credential values in extra fields and mapping arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in list(extra_fields(record)):
            setattr(record, key, REDACTED if key in SENSITIVE_KEYS else redact(value))
        if record.args:
            record.args = redact(record.args)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for production log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        req_id = getattr(record, "request_id", None)
        if req_id and req_id != "-":
            log_obj["request_id"] = req_id
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in extra_fields(record):
            log_obj[key] = value
        return json.dumps(log_obj, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format with extra fields appended as key=value."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = " ".join(f"{k}={v}" for k, v in extra_fields(record))
        return f"{line} {extras}" if extras else line


def build_handler(
    environment: str,
    level: int,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Stream handler with request-id and redaction filters attached."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(RedactSecretsFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else ConsoleFormatter())
    return handler


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Replace the root logger's handlers with one filtered stream handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'production' selects JSON output
        debug: If True, use DEBUG level regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)
    root.addHandler(build_handler(environment, level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger. Pass structured fields with extra={}."""
    return logging.getLogger(name)
