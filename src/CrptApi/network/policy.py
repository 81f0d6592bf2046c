# === NAVMAP v1 ===
# {
#   "module": "CrptApi.network.policy",
#   "purpose": "HTTP policy constants and defaults.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP policy constants and defaults.

Defines the document create endpoint, media types, and the fallback timeout
and connection pooling budgets used when no settings object is supplied.
"""

# ============================================================================
# Endpoint
# ============================================================================

#: Document create endpoint of the CRPT "lk" API (v3)
CREATE_DOCUMENT_URL = "https://ismp.crpt.ru/api/v3/lk/documents/create"

#: Media type of the request body
APPLICATION_JSON = "application/json"

#: Header carrying the detached document signature
SIGNATURE_HEADER = "Signature"


# ============================================================================
# Timeout Budgets (seconds)
# ============================================================================

#: Connection establishment timeout (initial TCP 3-way handshake)
HTTP_CONNECT_TIMEOUT = 5.0

#: Read timeout (time between data packets on established connection)
HTTP_READ_TIMEOUT = 30.0

#: Write timeout (time to send request body)
HTTP_WRITE_TIMEOUT = 15.0

#: Pool timeout (acquiring a connection from the pool)
HTTP_POOL_TIMEOUT = 5.0


# ============================================================================
# Connection Pooling
# ============================================================================

#: Maximum concurrent connections
MAX_CONNECTIONS = 32

#: Maximum idle connections kept open for reuse
MAX_KEEPALIVE_CONNECTIONS = 10

#: How long to keep idle connections alive (seconds)
KEEPALIVE_EXPIRY = 5.0


# ============================================================================
# Security & Compliance
# ============================================================================

#: Submissions are never redirected; a 3xx is reported as a failure
FOLLOW_REDIRECTS = False

#: Maximum number of response body characters copied into errors and logs
MAX_ERROR_BODY_CHARS = 2048


__all__ = [
    "CREATE_DOCUMENT_URL",
    "APPLICATION_JSON",
    "SIGNATURE_HEADER",
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_READ_TIMEOUT",
    "HTTP_WRITE_TIMEOUT",
    "HTTP_POOL_TIMEOUT",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "KEEPALIVE_EXPIRY",
    "FOLLOW_REDIRECTS",
    "MAX_ERROR_BODY_CHARS",
]
