# logging_utils.py
"""Structured logging for the LeadSweep service.

Log lines go to stderr so command output on stdout stays machine readable.
Context fields such as the zone being scraped or the lead being mailed are
bound with ``LogContext`` and travel with every record emitted inside the
block. The context lives in a ``ContextVar``, so periodic tasks running
concurrently on the same event loop never see each other's fields.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_log_context: ContextVar[Dict[str, Any]] = ContextVar("leadsweep_log_context", default={})

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

NOISY_LOGGERS = (
    "urllib3",
    "googlemaps",
    "python_http_client",
    "sqlalchemy.engine",
    "aiosqlite",
    "asyncio",
)


class LogContext:
    """Bind fields to every log record emitted inside the block.

    Blocks nest; leaving a block restores the outer fields.

    Example:
        >>> with LogContext(zone="Grid_3_4"):
        ...     logger.info("Scraping zone")  # carries zone=Grid_3_4
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _log_context.reset(self._token)

    @staticmethod
    def get_context() -> Dict[str, Any]:
        """Get a copy of the fields bound in the current context."""
        return dict(_log_context.get())


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges the current LogContext into ``extra``.

    Explicit ``extra`` keys win over context fields of the same name.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**LogContext.get_context(), **kwargs.get("extra", {})}
        return msg, kwargs


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with context fields under ``context``."""

    def __init__(self, service_name: str = "leadsweep"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        fields = _record_fields(record)
        if fields:
            entry["context"] = fields
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line development format with trailing ``key=value`` fields."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        line = f"[{timestamp}] {level} [{record.name}] {record.getMessage()}"
        fields = _record_fields(record)
        if fields:
            line += " (" + " ".join(f"{key}={value}" for key, value in fields.items()) + ")"
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: Optional[str] = None,
    structured: Optional[bool] = None,
    service_name: str = "leadsweep",
) -> logging.Logger:
    """Configure the root logger for the CLI and long-running services.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL env var or INFO.
        structured: Emit JSON lines. Defaults to True unless APP_ENV is 'dev'.
        service_name: Service name stamped on structured records.

    Returns:
        The ``leadsweep`` package logger.
    """
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level, logging.INFO)

    if structured is None:
        structured = os.environ.get("APP_ENV", "dev") != "dev"

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        StructuredFormatter(service_name=service_name) if structured else HumanReadableFormatter()
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # Library chatter only in DEBUG.
    third_party_level = logging.WARNING if log_level > logging.DEBUG else log_level
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger = logging.getLogger("leadsweep")
    logger.debug("Logging initialized", extra={"log_level": level, "structured": structured})
    return logger
