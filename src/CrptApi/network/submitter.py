"""Document submission: one JSON POST to the document create endpoint.

:class:`DocumentSubmitter` is stateless per call.  It knows
nothing about rate limits; :class:`CrptApi.api.CrptApi` calls it exactly once
per admission granted by the gate.  Outcomes map onto the error taxonomy in
:mod:`CrptApi.errors`:

- 2xx → :class:`SubmissionResult`
- any other status → :class:`~CrptApi.errors.SubmissionFailure`
- connection, timeout or protocol problems → :class:`~CrptApi.errors.TransportError`
- a payload that cannot be encoded → :class:`~CrptApi.errors.SerializationError`

Nothing is retried.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import httpx

from CrptApi.documents import Document
from CrptApi.errors import SerializationError, SubmissionFailure, TransportError
from CrptApi.network.policy import (
    APPLICATION_JSON,
    CREATE_DOCUMENT_URL,
    MAX_ERROR_BODY_CHARS,
    SIGNATURE_HEADER,
)

logger = logging.getLogger(__name__)

DocumentPayload = Union[Document, Mapping[str, Any]]


@dataclass(frozen=True)
class SubmissionResult:
    """Successful response of the document create call."""

    status_code: int
    body: str
    elapsed_ms: float

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body as JSON, falling back to the raw text."""
        try:
            return json.loads(self.body)
        except ValueError:
            return self.body


def serialize_document(document: DocumentPayload) -> str:
    """Encode ``document`` as the JSON request body.

    Mappings are validated as :class:`Document` first so both forms produce
    identical wire output.

    Raises:
        SerializationError: If the payload is not a valid document
    """
    if isinstance(document, Document):
        model = document
    elif isinstance(document, Mapping):
        model = Document.from_mapping(document)
    else:
        raise SerializationError(
            f"Unsupported document payload type: {type(document).__name__}"
        )
    try:
        return model.to_json()
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode document as JSON: {exc}") from exc


class DocumentSubmitter:
    """Serialise a document and POST it to the create endpoint.

    Attributes:
        url: Target endpoint
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        url: str = CREATE_DOCUMENT_URL,
    ) -> None:
        """Initialize DocumentSubmitter.

        Args:
            client: HTTPX client to use; the shared client when omitted
            url: Endpoint receiving the POST
        """
        self._client = client
        self.url = url

    def _ensure_http_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            from CrptApi.network.client import get_http_client

            self._client = get_http_client()
        return self._client

    def build_request(self, document: DocumentPayload, signature: str) -> httpx.Request:
        """Build (but do not send) the POST request for ``document``."""
        body = serialize_document(document)
        return self._ensure_http_client().build_request(
            "POST",
            self.url,
            content=body.encode("utf-8"),
            headers={
                "Content-Type": APPLICATION_JSON,
                "Accept": APPLICATION_JSON,
                SIGNATURE_HEADER: signature,
            },
        )

    def submit(self, document: DocumentPayload, signature: str) -> SubmissionResult:
        """Send one document.

        Args:
            document: ``Document`` model or wire-format mapping
            signature: Detached signature sent alongside the document

        Returns:
            SubmissionResult for a 2xx answer

        Raises:
            SerializationError: If the payload cannot be encoded
            TransportError: If no response was received
            SubmissionFailure: If the service answered with a non-2xx status
        """
        return self.send(self.build_request(document, signature))

    def send(self, request: httpx.Request) -> SubmissionResult:
        """Send a request produced by :meth:`build_request` and interpret the answer.

        Raises:
            TransportError: If no response was received
            SubmissionFailure: If the service answered with a non-2xx status
        """
        client = self._ensure_http_client()

        started = time.perf_counter()
        try:
            response = client.send(request)
            try:
                body = response.text
            finally:
                response.close()
        except httpx.TransportError as exc:
            logger.error(
                "Document submission transport failure",
                extra={"url": self.url, "error": str(exc)},
            )
            raise TransportError(f"POST {self.url} failed: {exc}") from exc
        elapsed_ms = (time.perf_counter() - started) * 1000

        if not response.is_success:
            excerpt = body[:MAX_ERROR_BODY_CHARS]
            logger.warning(
                "Failed to create document",
                extra={
                    "url": self.url,
                    "status": response.status_code,
                    "body": excerpt,
                    "elapsed_ms": round(elapsed_ms, 3),
                },
            )
            raise SubmissionFailure(
                f"Failed to create document. Status code: {response.status_code}",
                status_code=response.status_code,
                body=excerpt,
            )

        logger.info(
            "Document created successfully",
            extra={
                "url": self.url,
                "status": response.status_code,
                "elapsed_ms": round(elapsed_ms, 3),
            },
        )
        return SubmissionResult(
            status_code=response.status_code,
            body=body,
            elapsed_ms=elapsed_ms,
        )


__all__ = [
    "DocumentPayload",
    "DocumentSubmitter",
    "SubmissionResult",
    "serialize_document",
]
