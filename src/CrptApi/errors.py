"""Exception hierarchy shared across rate limiting, settings, and document submission.

The client spans configuration parsing, admission control, and a single HTTP
call per document.  This module groups the failure modes into a small
hierarchy so caller code can react to high-level categories (for example,
a cancelled wait vs. a rejected document) while still having access to the
specialised subclasses and their attributes when finer-grained handling is
required.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "CrptApiError",
    "ConfigurationError",
    "CancellationError",
    "AcquireCancelledError",
    "AcquireTimeoutError",
    "SubmissionError",
    "SerializationError",
    "TransportError",
    "SubmissionFailure",
]


class CrptApiError(RuntimeError):
    """Base exception for admission control and document submission failures."""


class ConfigurationError(CrptApiError):
    """Raised when a rate, capacity, window, or settings value is invalid."""


class CancellationError(CrptApiError):
    """Raised when a blocked admission wait is abandoned before a slot was granted."""


class AcquireCancelledError(CancellationError):
    """Raised when a cancellation token fires while ``acquire()`` is waiting."""


class AcquireTimeoutError(CancellationError):
    """Raised when a caller-supplied deadline expires before a slot frees up."""

    def __init__(self, message: str, *, timeout: Optional[float] = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class SubmissionError(CrptApiError):
    """Raised when the rate-limited document submission itself fails."""


class SerializationError(SubmissionError):
    """Raised when a document payload cannot be encoded as JSON."""


class TransportError(SubmissionError):
    """Raised when the HTTP exchange fails before a response is received."""


class SubmissionFailure(SubmissionError):
    """Raised when the service answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
