"""HTTP network layer instrumentation and telemetry.

Logs a ``net.request`` record for every HTTP call made by the shared HTTPX
client, capturing method, redacted URL, status and elapsed time.
"""

import logging
import time
from typing import Any
from urllib.parse import urlparse, urlunparse

logger = logging.getLogger(__name__)


def create_http_event_hooks() -> dict:
    """Create HTTPX event hooks for telemetry emission.

    Returns:
        Dict with 'request' and 'response' hooks for HTTPX client

    Usage:
        >>> import httpx
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.Client(event_hooks=hooks)
    """
    request_start_time: dict[int, float] = {}

    def on_request(request: Any) -> None:
        """Called when request starts."""
        request_start_time[id(request)] = time.perf_counter()

    def on_response(response: Any) -> None:
        """Called when response headers arrive."""
        start_time = request_start_time.pop(id(response.request), None)
        if start_time is None:
            return

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        try:
            logger.debug(
                "net.request",
                extra={
                    "extra_fields": {
                        "event": "net.request",
                        "method": response.request.method,
                        "url_redacted": _redact_url(str(response.request.url)),
                        "host": response.request.url.host or "unknown",
                        "status": response.status_code,
                        "http_version": response.http_version,
                        "elapsed_ms": round(elapsed_ms, 3),
                    }
                },
            )
        except Exception:
            # Never fail telemetry
            pass

    return {
        "request": [on_request],
        "response": [on_response],
    }


def _redact_url(url: str) -> str:
    """Redact query strings and fragments, keeping scheme + host + path."""
    try:
        parsed = urlparse(url)
        return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))
    except Exception:
        return "[URL_REDACTION_FAILED]"


__all__ = [
    "create_http_event_hooks",
]
