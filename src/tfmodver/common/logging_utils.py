"""Logging helpers shared across the registry, cache and updater modules.

Provides a single ``configure_logging`` entry point for the CLI plus small
utilities for structured ``extra=`` payloads, cheap DEBUG guards, URL
redaction and duration measurement.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, Dict, Optional

from tfmodver.constants import Constants

ENV_LOG_LEVEL = "TFMODVER_LOG_LEVEL"

_SENSITIVE_QUERY_KEYS = ("token", "access_token", "apikey", "api_key", "key", "password", "secret")


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    The level comes from ``level`` when given, otherwise from the
    ``TFMODVER_LOG_LEVEL`` environment variable, defaulting to INFO.
    Handlers installed by a previous call are replaced so repeated calls
    (common in tests) do not duplicate output.
    """
    level_name = (level or os.environ.get(ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level_value)

    for handler in list(root.handlers):
        if getattr(handler, "_tfmodver_handler", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(Constants.LOG_FORMAT)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    setattr(stream, "_tfmodver_handler", True)
    root.addHandler(stream)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        setattr(file_handler, "_tfmodver_handler", True)
        root.addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping fields whose value is None."""
    return {k: v for k, v in fields.items() if v is not None}


def redact(value: Optional[str]) -> str:
    """Mask a secret-looking value for logs."""
    if not value:
        return ""
    return "[REDACTED]"


def safe_url(url: str) -> str:
    """Return ``url`` with credentials and sensitive query values redacted."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc
    if "@" in netloc:
        netloc = "[REDACTED]@" + netloc.rsplit("@", 1)[1]
    query = parts.query
    if query:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True)
        query = "&".join(
            f"{k}={redact(v) if k.lower() in _SENSITIVE_QUERY_KEYS else v}" for k, v in pairs
        )
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
