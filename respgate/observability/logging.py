"""
respgate - Structured JSON Logging

Structured logging with automatic context injection, plus the append-only
interaction log that records every upstream call and streaming event.

Usage:
    from respgate.observability.logging import setup_logging, get_logger

    # Setup at startup
    setup_logging(level="INFO")

    # Get logger
    logger = get_logger(__name__)
    logger.info("Stream finished", response_id="resp_123")

Output:
    {"timestamp": "2025-01-15T10:30:00+00:00", "level": "INFO", "logger": "__main__",
     "message": "Stream finished", "response_id": "resp_123", "request_id": "req_xyz"}
"""

import os
import sys
import json
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Context variables for correlation IDs
_request_context: ContextVar[Optional["LogContext"]] = ContextVar("log_context", default=None)


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class LogContext:
    """
    Logging context with correlation IDs.

    Thread-safe using contextvars.
    """
    request_id: str = ""
    trace_id: str = ""
    span_id: str = ""
    endpoint: str = ""
    response_id: str = ""
    model: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        """Get current log context."""
        return _request_context.get()

    @classmethod
    def set_current(cls, ctx: "LogContext"):
        """Set current log context."""
        _request_context.set(ctx)

    @classmethod
    def clear(cls):
        """Clear current log context."""
        _request_context.set(None)

    def update(self, **kwargs):
        """Update context fields."""
        for key, value in kwargs.items():
            if hasattr(self, key) and key != "extra":
                setattr(self, key, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging, skipping empty fields."""
        result = {}
        for key in ("request_id", "trace_id", "span_id", "endpoint", "response_id", "model"):
            value = getattr(self, key)
            if value:
                result[key] = value
        result.update(self.extra)
        return result


# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED_RECORD_ATTRS = {
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with automatic context injection.

    Output format:
    {
        "timestamp": "2025-01-15T10:30:00.123456+00:00",
        "level": "INFO",
        "logger": "module.name",
        "message": "Log message",
        "request_id": "req_abc123",
        ... additional fields
    }
    """

    # Fields to redact from logs
    SENSITIVE_FIELDS = {
        "password", "secret", "token", "api_key", "apikey",
        "authorization", "credential", "private_key",
    }

    # Counters such as tokens_used are not secrets.
    NON_SENSITIVE_FIELDS = {"tokens_used", "total_tokens", "max_output_tokens"}

    def __init__(
        self,
        include_location: bool = False,
        redact_sensitive: bool = True,
    ):
        super().__init__()
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_location:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = LogContext.get_current()
        if ctx:
            log_data.update(ctx.to_dict())

        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_ATTRS:
                continue
            if self.redact_sensitive and self._is_sensitive(key):
                value = "[REDACTED]"
            log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _is_sensitive(self, field_name: str) -> bool:
        """Check if field name indicates sensitive data."""
        field_lower = field_name.lower()
        if field_lower in self.NON_SENSITIVE_FIELDS:
            return False
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


class StructuredLogger:
    """
    Structured logger wrapper with convenience methods.

    Keyword arguments other than the stdlib ones become structured fields.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, **kwargs):
        """Internal log method with context injection."""
        extra = dict(kwargs.pop("extra", None) or {})

        ctx = LogContext.get_current()
        if ctx:
            for key, value in ctx.to_dict().items():
                extra.setdefault(key, value)

        for key in list(kwargs.keys()):
            if key not in {"exc_info", "stack_info", "stacklevel"}:
                extra[key] = kwargs.pop(key)

        # LogRecord refuses extras that shadow its own attributes.
        for key in list(extra.keys()):
            if key in _RESERVED_RECORD_ATTRS:
                extra[f"field_{key}"] = extra.pop(key)

        kwargs["extra"] = extra
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        """Log exception with traceback."""
        kwargs["exc_info"] = True
        self._log(logging.ERROR, msg, *args, **kwargs)


# Module-level state
_logging_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    include_location: bool = False,
    redact_sensitive: bool = True,
) -> None:
    """
    Setup structured logging.

    Call once at application startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON formatter (True) or standard formatter (False)
        include_location: Include filename:lineno in logs
        redact_sensitive: Redact sensitive fields like API keys
    """
    global _logging_configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if json_output:
        formatter: logging.Formatter = JSONFormatter(
            include_location=include_location,
            redact_sensitive=redact_sensitive,
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    if not _logging_configured:
        level = os.getenv("LOG_LEVEL", "INFO")
        json_output = os.getenv("LOG_FORMAT", "json").lower() == "json"
        setup_logging(level=level, json_output=json_output)

    return StructuredLogger(logging.getLogger(name))


# ============================================================
# Interaction log
# ============================================================

class InteractionLogger:
    """
    Append-only record of upstream calls and streaming events.

    Each record is written as pretty-printed JSON followed by a separator
    line to ``<log_dir>/<YYYY-MM-DD>/<api>.log`` and mirrored to the
    structured logger. Writing never raises: a failed write is reported
    through the structured logger and the request carries on.

    An empty ``log_dir`` disables the file sink.
    """

    SEPARATOR = "-" * 80

    def __init__(
        self,
        log_dir: Optional[str] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        if log_dir is None:
            from ..config import get_config
            log_dir = get_config().log_dir
        self.log_dir: Optional[Path] = Path(log_dir) if log_dir else None
        self._logger = logger or get_logger("respgate.interactions")

    def _log_file_path(self, api: str) -> Path:
        date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        date_dir = self.log_dir / date
        date_dir.mkdir(parents=True, exist_ok=True)
        return date_dir / f"{api}.log"

    def _append(self, api: str, entry: Dict[str, Any]) -> None:
        if self.log_dir is None:
            return
        try:
            path = self._log_file_path(api)
            line = json.dumps(entry, indent=2, default=str, ensure_ascii=False)
            with open(path, "a", encoding="utf-8") as fh:
                fh.write(f"{line}\n{self.SEPARATOR}\n")
        except (OSError, TypeError, ValueError) as e:
            self._logger.error("Failed to write interaction log", api=api, error=str(e))

    def log_streaming_event(self, entry: Dict[str, Any]) -> None:
        """
        Record one streaming event.

        Args:
            entry: Record with at least ``api``, ``endpoint``, ``event_type``
                and ``sequence``; ``timestamp`` is filled in when missing
        """
        entry = {"timestamp": utc_timestamp(), **entry}
        api = entry.get("api") or "responses"
        self._append(api, entry)

        log_fields = {
            "api": api,
            "event_type": entry.get("event_type"),
            "sequence": entry.get("sequence"),
        }
        if entry.get("error") is not None:
            self._logger.warning("Streaming event error", error=entry["error"], **log_fields)
        else:
            self._logger.debug("Streaming event", **log_fields)

    def log_openai_interaction(self, entry: Dict[str, Any]) -> None:
        """
        Record one upstream API interaction (success or failure).

        Args:
            entry: Record with ``api``, ``endpoint``, ``request`` and either
                ``response`` or ``error``, plus a ``metadata`` dict
        """
        entry = {"timestamp": utc_timestamp(), "metadata": {}, **entry}
        api = entry.get("api") or "responses"
        self._append(api, entry)

        error = entry.get("error")
        if error is not None:
            self._logger.error(
                "Upstream interaction failed",
                api=api,
                endpoint=entry.get("endpoint"),
                status_code=error.get("statusCode") if isinstance(error, dict) else None,
                error_code=error.get("error_code") if isinstance(error, dict) else None,
            )
        else:
            self._logger.info(
                "Upstream interaction",
                api=api,
                endpoint=entry.get("endpoint"),
                latency_ms=entry["metadata"].get("latency_ms"),
                tokens_used=entry["metadata"].get("tokens_used"),
            )


_interaction_logger: Optional[InteractionLogger] = None


def get_interaction_logger() -> InteractionLogger:
    """Get the process-wide interaction logger."""
    global _interaction_logger
    if _interaction_logger is None:
        _interaction_logger = InteractionLogger()
    return _interaction_logger


def set_interaction_logger(logger: Optional[InteractionLogger]) -> None:
    """Replace the process-wide interaction logger (None resets it)."""
    global _interaction_logger
    _interaction_logger = logger
