"""Cooperative cancellation for blocked admission waits.

A caller of :meth:`CrptApi.ratelimit.gate.AdmissionGate.acquire` may sleep on
the gate's condition variable for up to a full rate window.  Cancelling its
:class:`CancellationToken` ends that sleep early: the token runs its wake-up
callbacks, the gate notifies its waiters, and the cancelled waiter leaves
without recording an admission.  Threads are never interrupted.

:class:`CancellationTokenGroup` cancels many tokens at once; the
:class:`~CrptApi.api.CrptApi` facade keeps one per instance so ``close()``
releases every caller still waiting.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)

WakeCallback = Callable[[], None]


class CancellationToken:
    """One-shot, thread-safe cancellation flag with wake-up callbacks.

    Examples:
        >>> token = CancellationToken()
        >>> token.add_callback(lambda: print("woken"))
        >>> token.cancel()
        woken
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[WakeCallback] = []

    def cancel(self) -> None:
        """Mark the token cancelled and run each registered callback once."""
        with self._lock:
            if self._is_cancelled.is_set():
                return
            self._is_cancelled.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback()
            except Exception:  # pragma: no cover
                logger.debug("cancellation callback failed", exc_info=True)

    def is_cancelled(self) -> bool:
        """Return True once :meth:`cancel` has been called."""
        return self._is_cancelled.is_set()

    def add_callback(self, callback: WakeCallback) -> None:
        """Register ``callback`` to run when the token is cancelled.

        If the token is already cancelled the callback runs immediately in the
        calling thread.
        """
        with self._lock:
            if not self._is_cancelled.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: WakeCallback) -> None:
        """Unregister ``callback``; unknown callbacks are ignored."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def reset(self) -> None:
        """Clear the cancelled flag (tests and controlled reuse only)."""
        with self._lock:
            self._is_cancelled.clear()


class CancellationTokenGroup:
    """Tokens cancelled together by :meth:`cancel_all`.

    After :meth:`cancel_all`, tokens joining the group start out cancelled.
    """

    def __init__(self) -> None:
        self._tokens: list[CancellationToken] = []
        self._lock = threading.Lock()
        self._cancelled = False

    def add_token(self, token: CancellationToken) -> None:
        """Track ``token``; cancel it at once if the group was already cancelled."""
        with self._lock:
            self._tokens.append(token)
            cancelled = self._cancelled
        if cancelled:
            token.cancel()

    def create_token(self) -> CancellationToken:
        """Return a new token that belongs to this group."""
        token = CancellationToken()
        self.add_token(token)
        return token

    def remove_token(self, token: CancellationToken) -> None:
        """Stop tracking ``token``; unknown tokens are ignored."""
        with self._lock:
            if token in self._tokens:
                self._tokens.remove(token)

    def cancel_all(self) -> None:
        """Cancel every member now and every token added later."""
        with self._lock:
            self._cancelled = True
            tokens = list(self._tokens)
        for token in tokens:
            token.cancel()

    def is_any_cancelled(self) -> bool:
        """Return True if at least one current member is cancelled."""
        with self._lock:
            return any(token.is_cancelled() for token in self._tokens)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


__all__ = ["CancellationToken", "CancellationTokenGroup"]
# === NAVMAP v1 ===
# {
#   "module": "CrptApi.cancellation",
#   "purpose": "Cooperative cancellation tokens that wake blocked admission waits",
#   "sections": [
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"},
#     {"id": "group", "name": "CancellationTokenGroup", "anchor": "GRP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
