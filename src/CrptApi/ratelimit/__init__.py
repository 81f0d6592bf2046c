# === NAVMAP v1 ===
# {
#   "module": "CrptApi.ratelimit.__init__",
#   "purpose": "Rate-limiting subsystem: blocking sliding-window admission gate.",
#   "sections": []
# }
# === /NAVMAP ===

"""Rate-limiting subsystem: blocking sliding-window admission gate.

Architecture:
- One AdmissionGate per configured rate, shared process-wide
- Sliding window with lazy eviction under a single condition variable
- Blocking acquire() with cooperative cancellation and optional deadline
- In-memory only; no cross-process coordination

Modules:
- config: RateSpec parsing, validation, normalization
- gate: AdmissionGate with acquire() semantics
- manager: process-wide gate registry
- instrumentation: admission event telemetry

Example:
    >>> from CrptApi.ratelimit import get_admission_gate
    >>> gate = get_admission_gate()
    >>> gate.acquire()
    >>> # Blocks until a slot is available inside the window
"""

from CrptApi.ratelimit.config import (
    RateSpec,
    get_schema_summary,
    normalize_duration_name,
    parse_rate_string,
)
from CrptApi.ratelimit.gate import AdmissionGate
from CrptApi.ratelimit.instrumentation import (
    emit_acquire_event,
    emit_blocked_event,
    emit_cancelled_event,
    log_rate_limit_stats,
)
from CrptApi.ratelimit.manager import (
    close_admission_gates,
    get_admission_gate,
    get_gate_stats,
    reset_admission_gates,
)

__all__ = [
    # Config
    "RateSpec",
    "parse_rate_string",
    "normalize_duration_name",
    "get_schema_summary",
    # Gate
    "AdmissionGate",
    # Registry
    "get_admission_gate",
    "get_gate_stats",
    "close_admission_gates",
    "reset_admission_gates",
    # Instrumentation
    "emit_acquire_event",
    "emit_blocked_event",
    "emit_cancelled_event",
    "log_rate_limit_stats",
]
