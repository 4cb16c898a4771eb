"""
Structured logging with JSON formatting and correlation ID support.

Every log line emitted while a request is being served carries the request's
correlation ID, so a single player-line lookup can be followed across the
provider adapters it fans out to.
"""
import logging
import json
import sys
from datetime import datetime
from typing import Any
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# LogRecord attributes that are never treated as structured extras
_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "asctime", "taskName",
})

# Upstream libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter.

    Fields: timestamp, level, logger, message, correlation_id, plus
    exception and any ``extra={...}`` values passed by the caller.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Human-readable colored console output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, "")
        message = f"{level_color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"

        correlation_id = correlation_id_var.get()
        if correlation_id:
            message += f" | correlation_id={correlation_id}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: logging.Handler | None = None,
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use the JSON formatter; otherwise the colored console one
        handler: Optional handler to install instead of a stdout StreamHandler
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

    handler.setFormatter(JSONFormatter() if json_output else ColoredFormatter())
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass ``__name__``)."""
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> Any:
    """Bind a correlation ID to the current context; returns a reset token."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Current correlation ID, or an empty string outside a request."""
    return correlation_id_var.get()


def clear_correlation_id(token: Any) -> None:
    """Restore the correlation ID that was active before ``set_correlation_id``."""
    correlation_id_var.reset(token)
