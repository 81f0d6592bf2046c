"""Process-wide registry of admission gates.

One gate enforces one global rate, so every component that throttles calls
at the same rate must share the same :class:`AdmissionGate`.  This module
hands out that shared instance:

- **Lazy initialization**: a gate is created on the first request for its rate
- **Keyed by rate**: ``RateSpec`` → gate; the default key comes from settings
- **PID-aware**: a forked child discards the parent's gates (their locks and
  admission logs belong to the parent process)

Example:
    >>> from CrptApi.ratelimit import get_admission_gate
    >>> gate = get_admission_gate()
    >>> gate.acquire()
"""

import logging
import os
import threading
from typing import Dict, Optional

from CrptApi.ratelimit.config import RateSpec
from CrptApi.ratelimit.gate import AdmissionGate

logger = logging.getLogger(__name__)

# ============================================================================
# Global State
# ============================================================================

_gates: Dict[RateSpec, AdmissionGate] = {}
_gates_lock = threading.Lock()
_gates_pid: Optional[int] = None


# ============================================================================
# Registry API
# ============================================================================


def get_admission_gate(spec: Optional[RateSpec] = None) -> AdmissionGate:
    """Get or create the shared gate for ``spec``.

    Args:
        spec: Rate to enforce; defaults to ``get_settings().rate_spec()``

    Returns:
        The process-wide AdmissionGate for that rate

    Behavior:
        - First call per rate: creates the gate
        - Subsequent calls: return the same instance (thread-safe)
        - Process forked: child detects PID change and starts with no gates
    """
    global _gates_pid

    if spec is None:
        # Import settings here to avoid circular dependency at module load time
        from CrptApi.settings import get_settings

        spec = get_settings().rate_spec()

    with _gates_lock:
        if _gates_pid != os.getpid():
            if _gates:
                logger.debug("Process forked; discarding inherited admission gates")
            _gates.clear()
            _gates_pid = os.getpid()

        gate = _gates.get(spec)
        if gate is None:
            gate = AdmissionGate.from_spec(spec)
            _gates[spec] = gate
            logger.debug(
                "Admission gate created",
                extra={"rate": str(spec), "pid": _gates_pid},
            )
        return gate


def get_gate_stats() -> Dict[str, dict]:
    """Return ``stats()`` of every registered gate keyed by rate string."""
    with _gates_lock:
        gates = list(_gates.items())
    return {str(spec): gate.stats() for spec, gate in gates}


def close_admission_gates() -> None:
    """Drop every registered gate.

    Safe to call multiple times. Threads already blocked in a dropped gate
    keep waiting on it; cancel them through their tokens.
    """
    with _gates_lock:
        if _gates:
            logger.debug("Admission gates closed", extra={"count": len(_gates)})
        _gates.clear()


def reset_admission_gates() -> None:
    """Reset the registry (primarily for testing)."""
    global _gates_pid

    close_admission_gates()
    with _gates_lock:
        _gates_pid = None


__all__ = [
    "get_admission_gate",
    "get_gate_stats",
    "close_admission_gates",
    "reset_admission_gates",
]
