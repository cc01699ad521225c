"""Per-key single-flight execution.

``SingleFlight.do(key, fn)`` runs ``fn`` at most once concurrently per key.
The first caller (the leader) runs it; callers arriving while it is in flight
(followers) block until it finishes and receive the same return value or the
same exception. Once the call completes its slot is released, so nothing,
failures included, is remembered: the next call after completion runs ``fn``
again. Calls for different keys never wait on each other.

The internal lock only guards the slot table; ``fn`` runs without it.
"""
from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

from ..base.cancellation import CancellationToken

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Followers re-check their cancellation token at this interval while waiting.
_FOLLOWER_POLL_SECONDS = 0.05


class _Call(Generic[V]):
    __slots__ = ("done", "result", "error", "followers")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Optional[V] = None
        self.error: Optional[BaseException] = None
        self.followers = 0


class SingleFlight(Generic[K, V]):
    """Deduplicate concurrent calls that share a key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[K, _Call[V]] = {}

    def do(self, key: K, fn: Callable[[], V], token: Optional[CancellationToken] = None) -> V:
        """Run ``fn`` for ``key`` or join the call already in flight.

        A follower whose ``token`` is cancelled stops waiting and raises
        ``CancelledError``; the leader's call is unaffected.
        """
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if call is None:
                call = _Call()
                self._calls[key] = call
            else:
                call.followers += 1

        if not leader:
            return self._wait(call, token)

        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()
        return call.result

    @staticmethod
    def _wait(call: _Call[V], token: Optional[CancellationToken]) -> V:
        if token is None:
            call.done.wait()
        else:
            while not call.done.wait(_FOLLOWER_POLL_SECONDS):
                token.raise_if_cancelled()
        if call.error is not None:
            raise call.error
        return call.result  # type: ignore[return-value]

    def in_flight(self, key: K) -> bool:
        with self._lock:
            return key in self._calls

    def followers(self, key: K) -> int:
        """Number of callers currently waiting on ``key`` (0 if none in flight)."""
        with self._lock:
            call = self._calls.get(key)
            return call.followers if call is not None else 0


__all__ = ["SingleFlight"]
