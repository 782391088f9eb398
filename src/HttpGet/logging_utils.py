# === NAVMAP v1 ===
# {
#   "module": "HttpGet.logging_utils",
#   "purpose": "Structured logging helpers and secret masking.",
#   "sections": [
#     {
#       "id": "redact-url",
#       "name": "redact_url",
#       "anchor": "function-redact-url",
#       "kind": "function"
#     },
#     {
#       "id": "mask-sensitive-data",
#       "name": "mask_sensitive_data",
#       "anchor": "function-mask-sensitive-data",
#       "kind": "function"
#     },
#     {
#       "id": "jsonformatter",
#       "name": "JSONFormatter",
#       "anchor": "class-jsonformatter",
#       "kind": "class"
#     },
#     {
#       "id": "setup-logging",
#       "name": "setup_logging",
#       "anchor": "function-setup-logging",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Structured logging helpers shared across the request engine."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import platformdirs

from .settings import get_settings

__all__ = ["JSONFormatter", "mask_sensitive_data", "redact_url", "setup_logging"]

_MASK = "***"
_SENSITIVE_KEYS = {"authorization", "proxy-authorization", "password", "cookie", "set-cookie"}
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def redact_url(url: str, *, strip_query: bool = False) -> str:
    """Remove credentials (and optionally the query string) from ``url``."""

    try:
        parts = urlsplit(url)
    except ValueError:
        return "[URL_REDACTION_FAILED]"
    netloc = parts.netloc
    if "@" in netloc:
        netloc = f"{_MASK}@{netloc.rpartition('@')[2]}"
    query = "" if strip_query else parts.query
    return urlunsplit((parts.scheme, netloc, parts.path, query, ""))


def mask_sensitive_data(payload: Any) -> Any:
    """Return ``payload`` with credentials and secret header values masked."""

    if isinstance(payload, dict):
        masked = {}
        for key, value in payload.items():
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS:
                masked[key] = _MASK
            else:
                masked[key] = mask_sensitive_data(value)
        return masked
    if isinstance(payload, (list, tuple)):
        return [mask_sensitive_data(item) for item in payload]
    if isinstance(payload, str) and "://" in payload and "@" in payload:
        return redact_url(payload)
    return payload


class JSONFormatter(logging.Formatter):
    """Formatter emitting masked JSON log entries."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string including its ``extra`` fields."""

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload), default=str)


def setup_logging(
    *,
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    max_log_size_mb: int = 10,
    backup_count: int = 5,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the ``HttpGet`` logger with console output and a JSON-lines file.

    Args:
        level: Logging level name; defaults to ``EngineSettings.log_level``
            (``HTTP_GET_LOG_LEVEL``).
        log_dir: Directory for ``http-get.jsonl``; defaults to
            ``EngineSettings.log_dir`` (``HTTP_GET_LOG_DIR``), then to the
            platform log directory for ``http-get``.
        max_log_size_mb: Size at which the JSON log rotates.
        backup_count: Number of rotated files kept.
        propagate: Whether records also reach the root logger.

    Returns:
        The configured package logger. Calling again replaces the handlers
        installed by a previous call instead of stacking them.
    """

    settings = get_settings()
    level = level or settings.log_level
    if log_dir is None:
        log_dir = settings.log_dir
    resolved_dir = Path(log_dir) if log_dir is not None else Path(platformdirs.user_log_dir("http-get"))
    resolved_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("HttpGet")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_http_get_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._http_get_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    file_handler = RotatingFileHandler(
        resolved_dir / "http-get.jsonl",
        maxBytes=int(max_log_size_mb * 1024 * 1024),
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler._http_get_managed = True  # type: ignore[attr-defined]
    logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
