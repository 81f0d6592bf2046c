"""Tests for AdmissionGate: the blocking sliding-window rate limiter.

Tests cover:
- Construction validation
- Immediate grants and non-blocking try_acquire
- Strict eviction at the window boundary (injected clock)
- Burst pacing across several windows
- Idle reset after a quiet period
- Cancellation and timeouts leave the admission log untouched
- Aggregate bound under concurrent callers
- Stats and introspection helpers
"""

import logging
import threading
import time

import pytest

from CrptApi.cancellation import CancellationToken
from CrptApi.errors import AcquireCancelledError, AcquireTimeoutError, ConfigurationError
from CrptApi.ratelimit.config import RateSpec, parse_rate_string
from CrptApi.ratelimit.gate import AdmissionGate


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def assert_window_bound(timestamps, capacity, window):
    """No ``capacity + 1`` admissions may share one closed window."""
    ordered = sorted(timestamps)
    for i in range(len(ordered) - capacity):
        assert ordered[i + capacity] - ordered[i] > window, (
            f"admissions {i} and {i + capacity} are only "
            f"{ordered[i + capacity] - ordered[i]:.4f}s apart"
        )


class TestAdmissionGateConstruction:
    """Constructor validation."""

    @pytest.mark.parametrize("capacity", [0, -1, 1.5, True, "5"])
    def test_invalid_capacity_rejected(self, capacity):
        """Capacity must be a positive integer."""
        with pytest.raises(ConfigurationError, match="capacity"):
            AdmissionGate(capacity, 1.0)

    @pytest.mark.parametrize("window", [0, 0.0, -1.0])
    def test_invalid_window_rejected(self, window):
        """Window must be strictly positive."""
        with pytest.raises(ConfigurationError, match="window_seconds"):
            AdmissionGate(5, window)

    def test_from_spec(self):
        """Gate built from a RateSpec takes its limit, window and name."""
        gate = AdmissionGate.from_spec(parse_rate_string("3/250ms"))
        assert gate.capacity == 3
        assert gate.window_seconds == pytest.approx(0.25)
        assert gate.name == "3/250ms"

    def test_from_spec_name_override(self):
        """An explicit name wins over the rate string."""
        gate = AdmissionGate.from_spec(RateSpec(5, 1000), name="documents")
        assert gate.name == "documents"

    def test_repr(self):
        """repr names the gate and its sizing."""
        gate = AdmissionGate(2, 0.5, name="g")
        assert repr(gate) == "AdmissionGate(name='g', capacity=2, window_seconds=0.5)"


class TestImmediateGrants:
    """Grants while the window has room."""

    def test_capacity_granted_without_waiting(self):
        """The first ``capacity`` callers return immediately."""
        gate = AdmissionGate(3, 10.0)
        start = time.monotonic()
        for _ in range(3):
            gate.acquire()
        assert time.monotonic() - start < 0.5
        assert gate.active_count() == 3

    def test_acquire_returns_recorded_timestamp(self):
        """acquire() returns the clock reading stored in the log."""
        gate = AdmissionGate(2, 10.0)
        ts = gate.acquire()
        assert gate.snapshot() == (ts,)

    def test_try_acquire_never_blocks(self):
        """try_acquire grants while room remains, then refuses."""
        gate = AdmissionGate(2, 10.0)
        assert gate.try_acquire() is True
        assert gate.try_acquire() is True
        start = time.monotonic()
        assert gate.try_acquire() is False
        assert time.monotonic() - start < 0.5
        assert gate.active_count() == 2

    def test_timeout_zero_grants_when_free(self):
        """A zero timeout still grants an available slot."""
        gate = AdmissionGate(1, 10.0)
        gate.acquire(timeout=0)
        assert gate.active_count() == 1

    def test_negative_timeout_rejected(self):
        """Negative timeouts are a caller error."""
        gate = AdmissionGate(1, 10.0)
        with pytest.raises(ValueError, match="non-negative"):
            gate.acquire(timeout=-1)
        assert gate.active_count() == 0


class TestEvictionBoundary:
    """Eviction semantics with an injected clock."""

    def test_entry_exactly_window_old_still_counts(self):
        """An admission exactly ``window`` old is still inside the window."""
        clock = FakeClock()
        gate = AdmissionGate(2, 10.0, clock=clock)
        assert gate.try_acquire()
        assert gate.try_acquire()

        clock.advance(10.0)
        assert gate.try_acquire() is False

        clock.advance(0.001)
        assert gate.try_acquire() is True
        assert gate.active_count() == 1

    def test_time_until_available(self):
        """Wait estimate is the remaining life of the oldest admission."""
        clock = FakeClock(100.0)
        gate = AdmissionGate(1, 10.0, clock=clock)
        assert gate.time_until_available() == 0.0

        gate.try_acquire()
        clock.advance(4.0)
        assert gate.time_until_available() == pytest.approx(6.0)

        clock.advance(7.0)
        assert gate.time_until_available() == 0.0

    def test_snapshot_does_not_purge(self):
        """snapshot() reports stale entries until something evicts them."""
        clock = FakeClock()
        gate = AdmissionGate(2, 1.0, clock=clock)
        gate.try_acquire()
        clock.advance(5.0)
        assert gate.snapshot() == (0.0,)
        assert gate.active_count() == 0
        assert gate.snapshot() == ()

    def test_log_never_exceeds_capacity(self):
        """The log holds at most ``capacity`` entries."""
        clock = FakeClock()
        gate = AdmissionGate(3, 1.0, clock=clock)
        for _ in range(10):
            gate.try_acquire()
            clock.advance(0.3)
            assert len(gate.snapshot()) <= 3


class TestBlockingAcquire:
    """Waiting for the oldest admission to expire."""

    def test_blocked_caller_waits_past_window(self):
        """A full gate admits the next caller only after the window passes."""
        gate = AdmissionGate(1, 0.3)
        first = gate.acquire()
        second = gate.acquire()
        assert second - first > 0.3

    @pytest.mark.slow
    def test_burst_paced_over_windows(self):
        """Twelve calls at 5/second take between two and three seconds."""
        gate = AdmissionGate(5, 1.0)
        start = time.monotonic()
        stamps = [gate.acquire() for _ in range(12)]
        elapsed = time.monotonic() - start

        assert 2.0 <= elapsed < 3.0
        # Calls 6-10 follow calls 1-5 by at least one window
        for i in range(5):
            assert stamps[i + 5] - stamps[i] > 1.0
        assert_window_bound(stamps, 5, 1.0)

    def test_idle_reset(self):
        """After a quiet window the gate grants immediately again."""
        gate = AdmissionGate(2, 0.2)
        gate.acquire()
        gate.acquire()
        time.sleep(0.3)

        start = time.monotonic()
        gate.acquire(timeout=0.05)
        assert time.monotonic() - start < 0.1
        assert gate.active_count() == 1

    def test_blocked_event_logged(self, caplog):
        """A wait emits one ratelimit.block record."""
        caplog.set_level(logging.DEBUG, logger="CrptApi.ratelimit")
        gate = AdmissionGate(1, 0.1, name="blocky")
        gate.acquire()
        gate.acquire()

        events = [getattr(r, "extra_fields", {}).get("event") for r in caplog.records]
        assert events.count("ratelimit.block") == 1
        granted = [
            r for r in caplog.records
            if getattr(r, "extra_fields", {}).get("event") == "ratelimit.acquire"
        ]
        assert granted[-1].extra_fields["gate"] == "blocky"
        assert "waited_ms" in granted[-1].extra_fields


class TestCancellation:
    """Abandoned waits never touch the admission log."""

    def _blocked_acquire(self, gate, token, outcome):
        try:
            outcome["ts"] = gate.acquire(cancel_token=token)
        except Exception as exc:
            outcome["error"] = exc

    def test_cancel_releases_blocked_waiter(self):
        """Cancelling the token wakes the waiter well before the window ends."""
        gate = AdmissionGate(1, 30.0)
        gate.acquire()
        before = gate.snapshot()

        token = CancellationToken()
        outcome = {}
        worker = threading.Thread(target=self._blocked_acquire, args=(gate, token, outcome))
        worker.start()
        time.sleep(0.1)
        assert worker.is_alive()

        start = time.monotonic()
        token.cancel()
        worker.join(timeout=2.0)

        assert not worker.is_alive()
        assert time.monotonic() - start < 2.0
        assert isinstance(outcome.get("error"), AcquireCancelledError)
        assert gate.snapshot() == before
        assert gate.stats()["cancelled_total"] == 1

    def test_pre_cancelled_token_raises_without_grant(self):
        """A token cancelled up front never consumes a free slot."""
        gate = AdmissionGate(2, 10.0)
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AcquireCancelledError):
            gate.acquire(cancel_token=token)
        assert gate.active_count() == 0

    def test_capacity_exact_after_cancellation(self):
        """A cancelled waiter does not shrink or grow the next window."""
        gate = AdmissionGate(2, 0.3)
        gate.acquire()
        gate.acquire()

        token = CancellationToken()
        outcome = {}
        worker = threading.Thread(target=self._blocked_acquire, args=(gate, token, outcome))
        worker.start()
        time.sleep(0.05)
        token.cancel()
        worker.join(timeout=2.0)
        assert isinstance(outcome.get("error"), AcquireCancelledError)

        time.sleep(0.35)
        assert gate.try_acquire() is True
        assert gate.try_acquire() is True
        assert gate.try_acquire() is False

    def test_callback_unregistered_after_acquire(self):
        """The wake-up callback does not outlive the call."""
        gate = AdmissionGate(1, 10.0)
        token = CancellationToken()
        gate.acquire(cancel_token=token)
        assert token._callbacks == []


class TestTimeout:
    """Caller deadlines."""

    def test_timeout_expires_while_full(self):
        """A deadline shorter than the wait raises AcquireTimeoutError."""
        gate = AdmissionGate(1, 30.0)
        gate.acquire()
        before = gate.snapshot()

        start = time.monotonic()
        with pytest.raises(AcquireTimeoutError) as excinfo:
            gate.acquire(timeout=0.1)
        elapsed = time.monotonic() - start

        assert 0.09 <= elapsed < 1.0
        assert excinfo.value.timeout == 0.1
        assert gate.snapshot() == before

    def test_timeout_longer_than_wait_grants(self):
        """A generous deadline is met by the natural expiry."""
        gate = AdmissionGate(1, 0.1)
        gate.acquire()
        gate.acquire(timeout=2.0)
        assert gate.stats()["granted_total"] == 2


class TestConcurrency:
    """Aggregate bound across threads."""

    def test_concurrent_callers_respect_window(self):
        """Thirty grants across six threads never exceed 3 per 0.2s."""
        gate = AdmissionGate(3, 0.2)
        stamps = []
        lock = threading.Lock()
        errors = []

        def worker():
            try:
                for _ in range(5):
                    ts = gate.acquire(timeout=10.0)
                    with lock:
                        stamps.append(ts)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        start = time.monotonic()
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=15.0)

        assert not errors
        assert all(not thread.is_alive() for thread in threads)
        assert len(stamps) == 30
        assert time.monotonic() - start >= 1.8
        assert_window_bound(stamps, 3, 0.2)

    def test_concurrent_try_acquire_never_overgrants(self):
        """Racing try_acquire calls grant exactly ``capacity`` slots."""
        gate = AdmissionGate(4, 30.0)
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            granted = gate.try_acquire()
            with lock:
                results.append(granted)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5.0)

        assert results.count(True) == 4
        assert gate.active_count() == 4


class TestStats:
    """Introspection."""

    def test_stats_fields(self):
        """stats() reports sizing, occupancy and counters."""
        gate = AdmissionGate(2, 5.0, name="docs")
        gate.acquire()
        stats = gate.stats()
        assert stats == {
            "gate": "docs",
            "capacity": 2,
            "window_seconds": 5.0,
            "active": 1,
            "granted_total": 1,
            "cancelled_total": 0,
        }
