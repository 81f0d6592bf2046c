"""Shared HTTPX client for document submission.

The process holds one ``httpx.Client`` built from ``get_settings().http``.  It
is created on first use and bound to the settings fingerprint and the PID
that built it:

- a settings change after binding is reported once and otherwise ignored;
  :func:`reset_http_client` picks the new values up
- a forked child builds its own client, since pooled sockets cannot be shared
  across processes

:func:`create_http_client` builds standalone clients as well; the
:class:`~CrptApi.api.CrptApi` facade owns one, and tests pass an
``httpx.MockTransport``.

Example:
    >>> from CrptApi.network import get_http_client, close_http_client
    >>> client = get_http_client()
    >>> close_http_client()
"""

from __future__ import annotations

import logging
import os
import ssl
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import certifi
import httpx

from CrptApi.network.instrumentation import create_http_event_hooks
from CrptApi.network.policy import FOLLOW_REDIRECTS, KEEPALIVE_EXPIRY

if TYPE_CHECKING:  # pragma: no cover
    from CrptApi.settings import HttpSettings

logger = logging.getLogger(__name__)


@dataclass
class _Binding:
    """The shared client plus the settings and process it was built for."""

    client: httpx.Client
    config_hash: str
    pid: int
    mismatch_reported: bool = False


_binding: Optional[_Binding] = None
_binding_lock = threading.Lock()


# ============================================================================
# Shared client lifecycle
# ============================================================================


def get_http_client() -> httpx.Client:
    """Return the process-wide client, building it on first use.

    Returns:
        The shared ``httpx.Client``
    """
    global _binding

    from CrptApi.settings import get_settings

    with _binding_lock:
        binding = _binding
        if binding is None or binding.pid != os.getpid():
            if binding is not None:
                logger.debug(
                    "PID changed; replacing inherited HTTP client",
                    extra={"old_pid": binding.pid},
                )
                _close_quietly(binding.client)
            settings = get_settings()
            binding = _binding = _Binding(
                client=create_http_client(settings.http),
                config_hash=settings.config_hash(),
                pid=os.getpid(),
            )
            logger.debug(
                "Shared HTTP client bound",
                extra={"config_hash": binding.config_hash, "pid": binding.pid},
            )
            return binding.client

        if not binding.mismatch_reported:
            current_hash = get_settings().config_hash()
            if current_hash != binding.config_hash:
                binding.mismatch_reported = True
                logger.warning(
                    "Settings config_hash changed after the shared HTTP client was built; "
                    "keeping the existing client until reset_http_client()",
                    extra={"bind_hash": binding.config_hash, "current_hash": current_hash},
                )
        return binding.client


def close_http_client() -> None:
    """Close and forget the shared client; a no-op when none exists."""
    global _binding

    with _binding_lock:
        binding, _binding = _binding, None
    if binding is not None:
        _close_quietly(binding.client)
        logger.debug("Shared HTTP client closed")


def reset_http_client() -> None:
    """Drop the shared client so the next access rebuilds it from fresh settings."""
    close_http_client()


def _close_quietly(client: httpx.Client) -> None:
    try:
        client.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing HTTP client", extra={"error": str(exc)})


# ============================================================================
# Construction
# ============================================================================


def _create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """TLS context trusting the certifi bundle, or an unverified one if ``verify`` is false."""
    if verify:
        return ssl.create_default_context(cafile=certifi.where())

    logger.warning("TLS certificate verification is disabled")
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def create_http_client(
    http: Optional["HttpSettings"] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build an ``httpx.Client`` configured by ``http``.

    Timeouts are applied per phase, the pool is bounded, redirects are never
    followed, and the telemetry hooks from
    :mod:`CrptApi.network.instrumentation` are attached.

    Args:
        http: HTTP settings; ``HttpSettings()`` when omitted
        transport: Optional transport replacing the network (e.g. ``httpx.MockTransport``)

    Returns:
        A new client owned by the caller
    """
    if http is None:
        from CrptApi.settings import HttpSettings

        http = HttpSettings()

    client = httpx.Client(
        transport=transport,
        timeout=httpx.Timeout(
            connect=http.timeout_connect,
            read=http.timeout_read,
            write=http.timeout_write,
            pool=http.timeout_pool,
        ),
        limits=httpx.Limits(
            max_connections=http.pool_max_connections,
            max_keepalive_connections=http.pool_keepalive_max,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        ),
        http2=http.http2,
        follow_redirects=FOLLOW_REDIRECTS,
        trust_env=http.trust_env,
        verify=_create_ssl_context(http.verify_tls),
        event_hooks=create_http_event_hooks(),
    )

    logger.debug(
        "HTTPX client created",
        extra={
            "http2": http.http2,
            "max_connections": http.pool_max_connections,
            "max_keepalive": http.pool_keepalive_max,
        },
    )
    return client


__all__ = [
    "get_http_client",
    "close_http_client",
    "reset_http_client",
    "create_http_client",
]
