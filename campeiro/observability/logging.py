# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Observability - Structured Logging

Every handler installed by configure_logging() carries a
RequestContextFilter, which stamps request_id, user_id and client_ip on
each record. The formatters read those attributes, so a log line written
anywhere inside a request is tied to it.

Credentials in `extra=` fields are masked using the key policy from
core.redaction.
"""

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

from ..core.context import get_request_context
from ..core.redaction import is_sensitive

REDACTED = "[REDACTED]"
UNSET = "-"

CONTEXT_ATTRS = ("request_id", "user_id", "client_ip")

_MAX_DEPTH = 10

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", *CONTEXT_ATTRS}


# ============================================================
# MASKING
# ============================================================


def _mask_string(value: str) -> str:
    # Bearer headers and JWTs (base64 of '{"' starts with eyJ)
    if len(value) > 20 and value.startswith(("Bearer ", "eyJ")):
        return f"{value[:8]}...{REDACTED}"
    return value


def mask_sensitive_data(data: Any, depth: int = 0) -> Any:
    """Mask credentials in log extras, keys by name and tokens by shape."""
    if depth > _MAX_DEPTH:
        return "[MAX_DEPTH_EXCEEDED]"
    if isinstance(data, dict):
        return {
            key: (
                REDACTED
                if is_sensitive(str(key), partial=True)
                else mask_sensitive_data(value, depth + 1)
            )
            for key, value in data.items()
        }
    if isinstance(data, list | tuple):
        return [mask_sensitive_data(item, depth + 1) for item in data]
    if isinstance(data, str):
        return _mask_string(data)
    return data


# ============================================================
# CONTEXT FILTER
# ============================================================


class RequestContextFilter(logging.Filter):
    """
    Stamps the current request context on log records.

    Outside a request the attributes are set to "-", so %-style format
    strings such as '%(request_id)s' always resolve.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_request_context()
        record.request_id = ctx.request_id if ctx else UNSET
        record.user_id = (ctx.user_id if ctx else None) or UNSET
        record.client_ip = (ctx.client_ip if ctx else None) or UNSET
        return True


def _context_of(record: logging.LogRecord) -> dict[str, str]:
    """Context attributes of a record, from the filter or the live context."""
    if not hasattr(record, "request_id"):
        RequestContextFilter().filter(record)
    values = {attr: getattr(record, attr, UNSET) for attr in CONTEXT_ATTRS}
    return {attr: value for attr, value in values.items() if value != UNSET}


def _format_exception(record: logging.LogRecord) -> str | None:
    if not record.exc_info or record.exc_info[0] is None:
        return None
    return "".join(traceback.format_exception(*record.exc_info))


# ============================================================
# FORMATTERS
# ============================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def __init__(self, mask_sensitive: bool = True):
        super().__init__()
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_of(record),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        stack = _format_exception(record)
        if stack is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["error_type"] = exc_type.__name__
            entry["error_message"] = str(exc_value)
            entry["stack_trace"] = stack

        extra = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if extra:
            entry["extra"] = mask_sensitive_data(extra) if self.mask_sensitive else extra

        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line output for a terminal, with the request id inline."""

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
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context_of(record)
        tags = []
        if "request_id" in ctx:
            tags.append(f"req={ctx['request_id'][:8]}")
        if "user_id" in ctx:
            tags.append(f"user={ctx['user_id'][:8]}")
        prefix = f"[{' '.join(tags)}] " if tags else ""

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        created = datetime.fromtimestamp(record.created, UTC)
        timestamp = created.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        line = f"{timestamp} {level:8} {record.name}:{record.lineno} {prefix}{record.getMessage()}"

        stack = _format_exception(record)
        return f"{line}\n{stack}" if stack else line


# ============================================================
# CONFIGURATION
# ============================================================

# Third-party loggers kept quiet below these levels
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "passlib": logging.ERROR,
}


def configure_logging(
    level: str = "INFO",
    format: str = "json",  # "json" or "human"
    mask_sensitive: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Replace the root handlers with a single stdout handler.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for production, "human" for development
        mask_sensitive: Mask credentials in extras (json format)
        use_colors: ANSI colours (human format)
    """
    if format == "json":
        formatter: logging.Formatter = JSONFormatter(mask_sensitive=mask_sensitive)
    else:
        formatter = HumanFormatter(use_colors=use_colors)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    return root_logger


__all__ = [
    "REDACTED",
    "RequestContextFilter",
    "mask_sensitive_data",
    "JSONFormatter",
    "HumanFormatter",
    "configure_logging",
]
