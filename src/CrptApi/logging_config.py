"""
Structured Logging Utilities

This module centralizes logging setup for the CRPT client. It provides
helpers for masking sensitive fields (document signatures in particular),
emitting JSON log records, generating correlation identifiers, and attaching
a size-rotated JSON-lines file handler in the platform log directory.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import platformdirs

from CrptApi.settings import LoggingSettings

ROOT_LOGGER_NAME = "CrptApi"
LOG_FILE_NAME = "crpt-api.jsonl"

_SENSITIVE_KEYS = {"authorization", "signature", "token", "secret", "password", "api_key"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Args:
        payload: Arbitrary key-value pairs that may contain signatures,
            credentials or tokens gathered from document submissions.

    Returns:
        Copy of the payload where secret fields are replaced with
        `***masked***`.

    Examples:
        >>> mask_sensitive_data({"signature": "MIIG...", "status": "ok"})
        {'signature': '***masked***', 'status': 'ok'}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value
    return masked


def generate_correlation_id() -> str:
    """Create a short-lived identifier that links related log entries.

    Returns:
        Twelve character hexadecimal identifier.

    Examples:
        >>> cid = generate_correlation_id()
        >>> len(cid)
        12
    """
    return uuid.uuid4().hex[:12]


def default_log_dir() -> Path:
    """Platform-specific log directory (XDG/macOS/Windows aware)."""
    return Path(platformdirs.user_log_dir("crpt-api"))


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a logging record into a JSON line.

        Args:
            record: Log record emitted by the client components.

        Returns:
            JSON string with masked secrets and correlation context.
        """
        now = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_obj = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_obj.update(record.extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def setup_logging(
    config: Optional[LoggingSettings] = None,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Configure console and optional file handlers for the client.

    Handlers installed by a previous call are replaced, so the function is
    safe to call repeatedly (tests, CLI re-configuration).

    Args:
        config: Logging settings; defaults to :class:`LoggingSettings()`.
        log_dir: Optional directory override for log file placement.

    Returns:
        Configured logger instance scoped to the ``CrptApi`` package.

    Examples:
        >>> logger = setup_logging(LoggingSettings(level="DEBUG"))
        >>> logger.name
        'CrptApi'
    """
    config = config or LoggingSettings()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.level_int())

    for handler in list(logger.handlers):
        if getattr(handler, "_crpt_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stdout)
    if config.emit_json_logs:
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    stream_handler._crpt_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if config.log_to_file or log_dir is not None:
        target_dir = log_dir or config.log_dir or default_log_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            target_dir / LOG_FILE_NAME,
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._crpt_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True

    return logger


__all__ = [
    "setup_logging",
    "mask_sensitive_data",
    "generate_correlation_id",
    "default_log_dir",
    "JSONFormatter",
]
