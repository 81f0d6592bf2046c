"""AdmissionGate: blocking sliding-window rate limiter for outbound calls.

The gate admits at most ``capacity`` callers inside any rolling window of
``window_seconds``.  Every admission attempt runs one critical section on a
shared :class:`threading.Condition`:

1. Evict admission timestamps older than ``now - window``.
2. If fewer than ``capacity`` remain, record ``now`` and return (grant).
3. Otherwise wait until the oldest admission leaves the window, then repeat.

Eviction and the capacity check always happen under the same lock, so the
aggregate bound holds no matter how many threads call :meth:`acquire`.

Properties worth knowing:
- **Monotonic clock**: timestamps come from ``time.monotonic`` so wall-clock
  adjustments cannot shrink or stretch the window.
- **No fairness**: blocked callers race for a freed slot; several of them may
  wake after the same wait and only the winners are admitted.  Ordering among
  waiters is not FIFO.
- **Timeout-driven re-checks**: slots free up only by the passage of time, so
  waiters sleep for exactly the time until the oldest entry expires.  The
  condition is notified only to wake a waiter whose cancellation token fired.
- **No refunds**: an admission is consumed when it is granted, whatever the
  caller does afterwards.

Example:
    >>> from CrptApi.ratelimit.gate import AdmissionGate
    >>> gate = AdmissionGate(capacity=5, window_seconds=1.0)
    >>> gate.acquire()  # returns immediately for the first five callers
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from CrptApi.cancellation import CancellationToken
from CrptApi.errors import AcquireCancelledError, AcquireTimeoutError, ConfigurationError
from CrptApi.ratelimit.config import RateSpec
from CrptApi.ratelimit.instrumentation import (
    emit_acquire_event,
    emit_blocked_event,
    emit_cancelled_event,
)

logger = logging.getLogger(__name__)


class AdmissionGate:
    """Thread-safe, blocking "at most N admissions per rolling window" gate.

    Attributes:
        capacity: Maximum admissions inside any window
        window_seconds: Window length in seconds
        name: Label used in log records and stats
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ) -> None:
        """Initialize AdmissionGate.

        Args:
            capacity: Maximum admissions inside any window; must be >= 1
            window_seconds: Window length in seconds; must be > 0
            clock: Monotonic, non-decreasing clock returning seconds
            name: Label used in log records and stats

        Raises:
            ConfigurationError: If capacity or window_seconds is out of range
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigurationError(f"capacity must be a positive integer, got: {capacity!r}")
        if not window_seconds > 0:
            raise ConfigurationError(f"window_seconds must be positive, got: {window_seconds!r}")

        self._capacity = capacity
        self._window = float(window_seconds)
        self._clock = clock
        self._name = name
        self._log: Deque[float] = deque(maxlen=capacity)
        self._condition = threading.Condition()
        self._granted_total = 0
        self._cancelled_total = 0

        logger.debug(
            "AdmissionGate initialized",
            extra={"gate": name, "capacity": capacity, "window_seconds": self._window},
        )

    @classmethod
    def from_spec(cls, spec: RateSpec, **kwargs: Any) -> "AdmissionGate":
        """Build a gate sized by ``spec``."""
        kwargs.setdefault("name", str(spec))
        return cls(spec.limit, spec.window_seconds, **kwargs)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_seconds(self) -> float:
        return self._window

    @property
    def name(self) -> str:
        return self._name

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def acquire(
        self,
        cancel_token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> float:
        """Block until one admission can be granted, record it, and return.

        Args:
            cancel_token: Optional token; cancelling it aborts the wait
            timeout: Optional caller deadline in seconds for the whole wait

        Returns:
            The clock reading recorded for the granted admission

        Raises:
            AcquireCancelledError: If ``cancel_token`` fired before a grant
            AcquireTimeoutError: If ``timeout`` elapsed before a grant
            ValueError: If ``timeout`` is negative
        """
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be non-negative, got: {timeout}")

        started = self._clock()
        deadline = None if timeout is None else started + timeout
        blocked = False
        error: Optional[Exception] = None

        if cancel_token is not None:
            cancel_token.add_callback(self._wake_waiters)
        try:
            with self._condition:
                while True:
                    if cancel_token is not None and cancel_token.is_cancelled():
                        self._cancelled_total += 1
                        error = AcquireCancelledError(
                            f"Admission wait on gate {self._name!r} was cancelled"
                        )
                        break

                    now = self._clock()
                    self._evict(now)
                    if len(self._log) < self._capacity:
                        self._log.append(now)
                        self._granted_total += 1
                        active = len(self._log)
                        break

                    wait_time = self._window - (now - self._log[0])
                    if wait_time <= 0:
                        # Oldest entry expired between reads; evict again.
                        continue
                    if deadline is not None:
                        remaining = deadline - now
                        if remaining <= 0:
                            self._cancelled_total += 1
                            error = AcquireTimeoutError(
                                f"No admission on gate {self._name!r} within {timeout}s",
                                timeout=timeout,
                            )
                            break
                        wait_time = min(wait_time, remaining)

                    if not blocked:
                        blocked = True
                        emit_blocked_event(
                            gate=self._name,
                            capacity=self._capacity,
                            retry_after_seconds=wait_time,
                        )
                    self._condition.wait(wait_time)
        finally:
            if cancel_token is not None:
                cancel_token.remove_callback(self._wake_waiters)

        waited_ms = (self._clock() - started) * 1000
        if error is not None:
            emit_cancelled_event(
                gate=self._name,
                reason="timeout" if isinstance(error, AcquireTimeoutError) else "cancelled",
                waited_ms=waited_ms,
            )
            raise error

        emit_acquire_event(
            gate=self._name,
            active=active,
            capacity=self._capacity,
            waited_ms=waited_ms if blocked else None,
        )
        return now

    def try_acquire(self) -> bool:
        """Grant one admission if a slot is free right now; never blocks."""
        with self._condition:
            now = self._clock()
            self._evict(now)
            if len(self._log) >= self._capacity:
                return False
            self._log.append(now)
            self._granted_total += 1
            active = len(self._log)
        emit_acquire_event(gate=self._name, active=active, capacity=self._capacity)
        return True

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def active_count(self) -> int:
        """Return the number of admissions still inside the window."""
        with self._condition:
            self._evict(self._clock())
            return len(self._log)

    def time_until_available(self) -> float:
        """Return seconds until an admission could be granted (0.0 if now)."""
        with self._condition:
            now = self._clock()
            self._evict(now)
            if len(self._log) < self._capacity:
                return 0.0
            return max(0.0, self._window - (now - self._log[0]))

    def snapshot(self) -> Tuple[float, ...]:
        """Return a copy of the admission log, oldest first, without purging."""
        with self._condition:
            return tuple(self._log)

    def stats(self) -> Dict[str, Any]:
        """Get admission statistics."""
        with self._condition:
            self._evict(self._clock())
            return {
                "gate": self._name,
                "capacity": self._capacity,
                "window_seconds": self._window,
                "active": len(self._log),
                "granted_total": self._granted_total,
                "cancelled_total": self._cancelled_total,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _evict(self, now: float) -> None:
        """Drop admissions older than ``now - window``. Caller holds the lock."""
        cutoff = now - self._window
        log = self._log
        while log and log[0] < cutoff:
            log.popleft()

    def _wake_waiters(self) -> None:
        with self._condition:
            self._condition.notify_all()

    def __repr__(self) -> str:
        return (
            f"AdmissionGate(name={self._name!r}, capacity={self._capacity}, "
            f"window_seconds={self._window})"
        )


__all__ = ["AdmissionGate"]
