"""Structured logging configuration for the rate limiter.

The library itself only calls get_logger(); applications opt in to the
handlers below with setup_logging(). JSON output is available for log
aggregation in production.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from ratelimit.core.config import settings

# LogRecord attributes that are never copied into "extra"
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "asctime", "timestamp", "logger", "level", "source", "taskName",
))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON objects for consumption by log aggregation
    systems like ELK Stack or Grafana Loki.

    Attributes:
        fields: List of fields to include in JSON output
    """

    STANDARD_FIELDS = ["name", "levelname", "message", "timestamp"]

    # Contextual fields describing one limit() call
    CONTEXT_FIELDS = [
        "identifier",    # Caller identifier being limited
        "limiter",       # Algorithm variant name
        "prefix",        # Key namespace
        "decision",      # admitted | denied
        "reason",        # Fail-open reason (timeout, store_unavailable)
        "duration_ms",   # Store round trip duration in milliseconds
    ]

    def __init__(
        self,
        fields: Optional[list] = None,
        datefmt: Optional[str] = None,
    ):
        super().__init__(datefmt=datefmt)
        self.fields = fields or (self.STANDARD_FIELDS + self.CONTEXT_FIELDS)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation of the log record
        """
        log_data: Dict[str, Any] = {}

        record.message = record.getMessage()

        log_data["timestamp"] = datetime.now().astimezone().isoformat()
        log_data["level"] = record.levelname
        log_data["logger"] = record.name
        log_data["message"] = record.message

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        for field in self.CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None and value != "-":
                log_data[field] = value

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in self.CONTEXT_FIELDS:
                continue
            log_data.setdefault("extra", {})[key] = value

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Logging filter that adds contextual fields to log records.

    Fills in defaults for identifier, limiter and the other context
    fields so the structured text format never hits a missing attribute.
    """

    CONTEXT_DEFAULTS = {
        "identifier": None,
        "limiter": None,
        "prefix": None,
        "decision": None,
        "reason": None,
        "duration_ms": None,
    }

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    formatters = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - identifier=%(identifier)s - limiter=%(limiter)s - decision=%(decision)s"
        },
    }

    if log_format == "json":
        formatters["json"] = {
            "()": "ratelimit.core.logging.JSONFormatter",
        }
        default_formatter = "json"
    else:
        default_formatter = "structured" if log_format == "structured" else "standard"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": default_formatter,
            "stream": sys.stdout,
            "filters": ["context"],
        },
        "error_console": {
            "class": "logging.StreamHandler",
            "level": "ERROR",
            "formatter": default_formatter,
            "stream": sys.stderr,
            "filters": ["context"],
        },
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {
                "()": "ratelimit.core.logging.ContextFilter",
            },
        },
        "handlers": handlers,
        "loggers": {
            "ratelimit": {
                "level": log_level,
                "handlers": ["console", "error_console"],
                "propagate": False,
            },
            "redis": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging() -> None:
    """Configure logging for the ratelimit package."""
    logging.config.dictConfig(get_logging_config())


def get_logger(name: str = "ratelimit") -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def get_log_context(
    identifier: Optional[str] = None,
    limiter: Optional[str] = None,
    prefix: Optional[str] = None,
    decision: Optional[str] = None,
    **extra
) -> Dict[str, Any]:
    """Create a log context dictionary for use with extra parameter.

    Args:
        identifier: Caller identifier
        limiter: Algorithm variant name
        prefix: Key namespace
        decision: admitted or denied
        **extra: Additional custom fields

    Returns:
        Dictionary suitable for passing as extra= parameter to logging calls

    Example:
        >>> logger.debug(
        ...     "Rate limit decision",
        ...     extra=get_log_context(identifier="user-1", limiter="fixed_window")
        ... )
    """
    context = {
        "identifier": identifier,
        "limiter": limiter,
        "prefix": prefix,
        "decision": decision,
    }
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
