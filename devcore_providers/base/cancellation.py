"""Cooperative cancellation primitives.

``CancellationToken`` is the external cancellation signal accepted by every
operation that crosses into a strategy call. Strategies poll it between
backend chunks and may register callbacks (for example ``stream.close``) so
that cancelling a consumer also aborts the underlying backend stream.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass
from threading import Event, Lock
from typing import Callable, List, Optional


class CancelledError(RuntimeError):
    """Raised when an operation is cancelled cooperatively.

    Distinguishes cooperative cancellation from other runtime failures so
    callers can map it to a ``cancelled`` outcome instead of an error.
    """


@dataclass
class _State:
    cancelled: bool = False
    reason: Optional[str] = None


class CancellationToken:
    """A cooperative cancellation token with optional cascading semantics.

    Thread-safe. Child tokens inherit cancellation when the parent is
    cancelled; callbacks run once, on the cancelling thread.
    """

    def __init__(self, *, parent: "CancellationToken | None" = None) -> None:
        self._state = _State()
        self._lock = Lock()
        self._event = Event()
        self._children: List[CancellationToken] = []
        self._callbacks: List[Callable[[], object]] = []
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:  # noqa: D401 - short form
        """Whether cancellation has been requested."""
        return self._state.cancelled

    @property
    def reason(self) -> str | None:  # noqa: D401 - short form
        """Reason string supplied at cancel time (if any)."""
        return self._state.reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cooperative cancellation, run callbacks and cascade to children."""
        with self._lock:
            if self._state.cancelled:
                return
            self._state.cancelled = True
            self._state.reason = reason
            children = list(self._children)
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        self._event.set()
        for callback in callbacks:
            with suppress(Exception):
                callback()
        for child in children:
            child.cancel(reason)

    def add_callback(self, callback: Callable[[], object]) -> Callable[[], None]:
        """Run ``callback`` on cancellation (immediately if already cancelled).

        Returns a function that unregisters the callback; strategies call it
        once their backend stream has been closed normally.
        """
        with self._lock:
            run_now = self._state.cancelled
            if not run_now:
                self._callbacks.append(callback)
        if run_now:
            with suppress(Exception):
                callback()

        def _remove() -> None:
            with self._lock, suppress(ValueError):
                self._callbacks.remove(callback)

        return _remove

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        """Link a child token so parent cancellation cascades (returns child)."""
        with self._lock:
            self._children.append(token)
            should_cancel = self._state.cancelled
            reason = self._state.reason
        if should_cancel:
            token.cancel(reason)
        return token

    def unlink_child(self, token: "CancellationToken") -> None:
        """Detach a finished child so the parent no longer references it."""
        with self._lock, suppress(ValueError):
            self._children.remove(token)

    def child(self) -> "CancellationToken":
        """Create and link a child token (shortcut)."""
        return CancellationToken(parent=self)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return ``cancelled``."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """Raise ``CancelledError`` if token is cancelled."""
        if self._state.cancelled:
            raise CancelledError(self._state.reason or "operation cancelled")

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return (
            f"CancellationToken(cancelled={self._state.cancelled}, "
            f"reason={self._state.reason!r}, children={len(self._children)})"
        )


def ensure_token(token: CancellationToken | None) -> CancellationToken:
    """Return ``token`` or a fresh, never-cancelled token."""
    return token if token is not None else CancellationToken()


__all__ = ["CancellationToken", "CancelledError", "ensure_token"]
