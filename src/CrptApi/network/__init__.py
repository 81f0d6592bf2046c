"""Network subsystem: HTTP client, policy constants, and document submission.

This package provides the HTTP side of the client based on:
- HTTPX: HTTP/1.1 and HTTP/2 client with connection pooling
- certifi: CA bundle for TLS verification

Modules:
- client: HTTPX client factory with lazy singleton pattern
- policy: endpoint and HTTP policy constants (timeouts, pooling)
- instrumentation: Request/response hooks for structured telemetry
- submitter: DocumentSubmitter, the single rate-limited POST

Example:
    >>> from CrptApi.network import DocumentSubmitter
    >>> submitter = DocumentSubmitter()
    >>> result = submitter.submit({"doc_id": "42"}, signature="...")
"""

from CrptApi.network.client import (
    close_http_client,
    create_http_client,
    get_http_client,
    reset_http_client,
)
from CrptApi.network.instrumentation import create_http_event_hooks
from CrptApi.network.policy import (
    APPLICATION_JSON,
    CREATE_DOCUMENT_URL,
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_WRITE_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
    SIGNATURE_HEADER,
)
from CrptApi.network.submitter import (
    DocumentSubmitter,
    SubmissionResult,
    serialize_document,
)

__all__ = [
    # Client lifecycle
    "get_http_client",
    "close_http_client",
    "reset_http_client",
    "create_http_client",
    # Endpoint
    "CREATE_DOCUMENT_URL",
    "APPLICATION_JSON",
    "SIGNATURE_HEADER",
    # Timeouts and pooling
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_READ_TIMEOUT",
    "HTTP_WRITE_TIMEOUT",
    "HTTP_POOL_TIMEOUT",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    # Instrumentation
    "create_http_event_hooks",
    # Submission
    "DocumentSubmitter",
    "SubmissionResult",
    "serialize_document",
]
