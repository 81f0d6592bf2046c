# === NAVMAP v1 ===
# {
#   "module": "CrptApi.ratelimit.instrumentation",
#   "purpose": "Admission gate instrumentation and telemetry helpers.",
#   "sections": [
#     {
#       "id": "emit-safe",
#       "name": "_emit_safe",
#       "anchor": "function-emit-safe",
#       "kind": "function"
#     },
#     {
#       "id": "emit-acquire-event",
#       "name": "emit_acquire_event",
#       "anchor": "function-emit-acquire-event",
#       "kind": "function"
#     },
#     {
#       "id": "emit-blocked-event",
#       "name": "emit_blocked_event",
#       "anchor": "function-emit-blocked-event",
#       "kind": "function"
#     },
#     {
#       "id": "emit-cancelled-event",
#       "name": "emit_cancelled_event",
#       "anchor": "function-emit-cancelled-event",
#       "kind": "function"
#     },
#     {
#       "id": "log-rate-limit-stats",
#       "name": "log_rate_limit_stats",
#       "anchor": "function-log-rate-limit-stats",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Admission gate instrumentation and telemetry helpers.

Events are plain log records on the ``CrptApi.ratelimit.instrumentation``
logger.  The structured payload travels in ``extra_fields`` so the JSON
formatter from :mod:`CrptApi.logging_config` flattens it into the emitted
line.  Telemetry must never break admission control, so every helper routes
through :func:`_emit_safe`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
}


def _emit_safe(type: str, *, level: str, payload: Dict[str, Any]) -> None:
    """Emit the event, swallowing telemetry errors."""
    try:
        logger.log(
            _LEVELS[level],
            type,
            extra={"extra_fields": {"event": type, **payload}},
        )
    except Exception:  # pragma: no cover
        pass


def emit_acquire_event(
    *,
    gate: str,
    active: int,
    capacity: int,
    waited_ms: Optional[float] = None,
) -> None:
    """Emit event when the gate grants an admission."""
    payload: Dict[str, Any] = {
        "gate": gate,
        "active": int(active),
        "capacity": int(capacity),
        "outcome": "granted",
    }
    if waited_ms is not None:
        payload["waited_ms"] = round(float(waited_ms), 3)
    # Immediate grants are the hot path; only waits are worth INFO.
    _emit_safe(
        "ratelimit.acquire",
        level="INFO" if waited_ms else "DEBUG",
        payload=payload,
    )


def emit_blocked_event(*, gate: str, capacity: int, retry_after_seconds: float) -> None:
    """Emit event when a caller has to wait for the oldest admission to expire."""
    payload = {
        "gate": gate,
        "capacity": int(capacity),
        "retry_after_sec": float(retry_after_seconds),
        "retry_after_ms": int(retry_after_seconds * 1000),
    }
    _emit_safe("ratelimit.block", level="DEBUG", payload=payload)


def emit_cancelled_event(*, gate: str, reason: str, waited_ms: float) -> None:
    """Emit event when a blocked wait is abandoned without an admission."""
    payload = {
        "gate": gate,
        "reason": reason,
        "waited_ms": round(float(waited_ms), 3),
        "outcome": "cancelled",
    }
    _emit_safe("ratelimit.cancel", level="WARN", payload=payload)


def log_rate_limit_stats(stats: Dict[str, Any]) -> None:
    """Log the latest gate stats (debug-level helper)."""
    _emit_safe("ratelimit.stats", level="DEBUG", payload={"stats": stats})


__all__ = [
    "emit_acquire_event",
    "emit_blocked_event",
    "emit_cancelled_event",
    "log_rate_limit_stats",
]
