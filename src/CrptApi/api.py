# === NAVMAP v1 ===
# {
#   "module": "CrptApi.api",
#   "purpose": "Rate-limited document create client combining the admission gate and the submitter.",
#   "sections": [
#     {
#       "id": "crptapi",
#       "name": "CrptApi",
#       "anchor": "class-crptapi",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Rate-limited document create client.

:class:`CrptApi` is the façade callers use.  Each :meth:`CrptApi.create_document`
call:

1. serialises the document (an invalid payload fails before any admission),
2. acquires one admission from the shared :class:`AdmissionGate` (may block),
3. performs exactly one POST through :class:`DocumentSubmitter`,
4. returns the :class:`SubmissionResult` or raises a submission error.

The gate's lock is never held during the HTTP exchange, so slow responses do
not serialise callers; only the admission rate is bounded.  A granted
admission is consumed even when the POST fails, and nothing is retried.

Example:
    >>> from CrptApi import CrptApi
    >>> with CrptApi("second", 5) as api:
    ...     api.create_document({"doc_id": "42", "doc_type": "LP_INTRODUCE_GOODS"}, "sig")
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from CrptApi.cancellation import CancellationToken, CancellationTokenGroup
from CrptApi.errors import SubmissionError
from CrptApi.logging_config import generate_correlation_id
from CrptApi.network.client import create_http_client
from CrptApi.network.submitter import DocumentPayload, DocumentSubmitter, SubmissionResult
from CrptApi.ratelimit.config import RateSpec
from CrptApi.ratelimit.gate import AdmissionGate
from CrptApi.ratelimit.manager import get_admission_gate
from CrptApi.settings import CrptSettings, get_settings

logger = logging.getLogger(__name__)


class CrptApi:
    """Thread-safe document create client with a bounded request rate.

    Attributes:
        gate: Admission gate enforcing the request rate
        submitter: Collaborator performing the POST
    """

    def __init__(
        self,
        time_unit: str = "second",
        request_limit: int = 5,
        *,
        gate: Optional[AdmissionGate] = None,
        submitter: Optional[DocumentSubmitter] = None,
        client: Optional[httpx.Client] = None,
        settings: Optional[CrptSettings] = None,
    ) -> None:
        """Initialize CrptApi.

        Args:
            time_unit: Window length as one unit (second, minute, hour, ...)
            request_limit: Maximum documents per window
            gate: Explicit gate; the shared gate for the rate when omitted
            submitter: Explicit collaborator; built from ``client`` when omitted
            client: HTTPX client for the default submitter
            settings: Settings for a client built here; ``get_settings()`` when omitted

        Raises:
            ConfigurationError: If the unit is unknown or the limit is not positive
        """
        if gate is None:
            gate = get_admission_gate(RateSpec.from_time_unit(time_unit, request_limit))
        self.gate = gate

        self._owned_client: Optional[httpx.Client] = None
        if submitter is None:
            settings = settings or get_settings()
            if client is None:
                client = self._owned_client = create_http_client(settings.http)
            submitter = DocumentSubmitter(client=client, url=settings.http.endpoint)
        self.submitter = submitter

        self._tokens = CancellationTokenGroup()
        self._closed = False

        logger.debug(
            "CrptApi initialized",
            extra={
                "gate": self.gate.name,
                "capacity": self.gate.capacity,
                "window_seconds": self.gate.window_seconds,
                "url": self.submitter.url,
            },
        )

    @classmethod
    def from_settings(cls, settings: Optional[CrptSettings] = None, **kwargs) -> "CrptApi":
        """Build a client sized and configured by ``settings``."""
        settings = settings or get_settings()
        spec = settings.rate_spec()
        kwargs.setdefault("gate", get_admission_gate(spec))
        return cls(settings=settings, **kwargs)

    def create_document(
        self,
        document: DocumentPayload,
        signature: str,
        *,
        cancel_token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> SubmissionResult:
        """Wait for an admission, then submit ``document`` once.

        Args:
            document: ``Document`` model or wire-format mapping
            signature: Detached document signature
            cancel_token: Optional token aborting the admission wait
            timeout: Optional deadline in seconds for the admission wait only

        Returns:
            SubmissionResult of the successful POST

        Raises:
            CancellationError: If the wait was cancelled, timed out, or the client closed
            SubmissionError: If serialisation, transport, or the service failed
        """
        correlation_id = generate_correlation_id()
        # An invalid payload must fail before any admission is consumed.
        request = self.submitter.build_request(document, signature)

        token = self._tokens.create_token()
        if cancel_token is not None:
            cancel_token.add_callback(token.cancel)

        try:
            started = time.monotonic()
            self.gate.acquire(cancel_token=token, timeout=timeout)
            waited_ms = (time.monotonic() - started) * 1000
        finally:
            if cancel_token is not None:
                cancel_token.remove_callback(token.cancel)
            self._tokens.remove_token(token)

        logger.debug(
            "Admission granted",
            extra={
                "correlation_id": correlation_id,
                "gate": self.gate.name,
                "waited_ms": round(waited_ms, 3),
            },
        )

        try:
            return self.submitter.send(request)
        except SubmissionError as exc:
            logger.error(
                "Document submission failed",
                extra={
                    "correlation_id": correlation_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise

    def close(self) -> None:
        """Cancel pending admission waits and close an owned HTTP client.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        self._tokens.cancel_all()
        if self._owned_client is not None:
            try:
                self._owned_client.close()
            except Exception as exc:  # pragma: no cover
                logger.error(
                    "Failed to close HTTP client",
                    extra={"error": str(exc)},
                )
            self._owned_client = None
        logger.debug("CrptApi closed")

    def __enter__(self) -> "CrptApi":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["CrptApi"]
