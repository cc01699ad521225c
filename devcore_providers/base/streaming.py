"""Cancellable stream channel with a single-terminal contract.

``StreamController`` is the only streaming type callers see. It pulls chunks
from a strategy iterator opened lazily on first ``next()`` and guarantees:

* chunks are delivered in backend order;
* exactly one chunk with ``is_final=True`` is produced, and it is the last;
* any exception (opening, mid-stream) becomes that terminal chunk with an
  error marker in ``metadata`` instead of propagating to the consumer;
* cancellation ends the stream with a ``cancelled`` terminal chunk and never a
  synthetic success chunk;
* closing the controller (explicitly, via ``with`` or by cancelling the
  caller's token) cancels the strategy's token and closes the backend
  iterator, so no work continues once the consumer has gone.

The stream is pull-based: nothing runs between ``next()`` calls.
"""
from __future__ import annotations

from contextlib import suppress
from threading import Lock
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from .cancellation import CancellationToken, CancelledError
from .errors import RETRYABLE_CODES, ErrorCode, classify_exception
from .models import StreamChunk

ChunkSource = Callable[[CancellationToken], Iterable[StreamChunk]]
TerminalHook = Callable[[StreamChunk, int], None]


def error_chunk(exc: BaseException) -> StreamChunk:
    """Build the terminal chunk describing ``exc``."""
    code = classify_exception(exc)
    message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
    return StreamChunk(
        content=f"Error: {message}",
        is_final=True,
        metadata={
            "is_error": True,
            "error_code": code.value,
            "error_kind": type(exc).__name__,
            "retryable": code in RETRYABLE_CODES,
        },
    )


def cancelled_chunk(reason: Optional[str] = None) -> StreamChunk:
    """Build the terminal chunk for a cancelled stream (no content)."""
    return StreamChunk(
        content="",
        is_final=True,
        metadata={
            "is_error": True,
            "cancelled": True,
            "error_code": ErrorCode.CANCELLED.value,
            "reason": reason or "operation cancelled",
        },
    )


def final_chunk(**metadata: Any) -> StreamChunk:
    """Build a successful terminal chunk (strategies attach usage here)."""
    return StreamChunk(content="", is_final=True, metadata={k: v for k, v in metadata.items() if v is not None})


class StreamController:
    """Iterator of :class:`StreamChunk` over one strategy stream.

    Parameters
    ----------
    source:
        Called once with the controller's token; returns the strategy's chunk
        iterable. Exceptions raised here (provider resolution included) become
        the terminal chunk.
    token:
        Caller's token. The controller works on a child of it, so cancelling
        the caller's token cancels the stream while ``close()`` never cancels
        the caller's token.
    on_terminal:
        Invoked once with the terminal chunk and the number of content chunks
        delivered before it.
    """

    def __init__(
        self,
        source: ChunkSource,
        token: Optional[CancellationToken] = None,
        *,
        on_terminal: Optional[TerminalHook] = None,
    ) -> None:
        self._source = source
        self._parent = token
        self._token = token.child() if token is not None else CancellationToken()
        self._on_terminal = on_terminal
        self._iterator: Optional[Iterator[StreamChunk]] = None
        self._terminal: Optional[StreamChunk] = None
        self._emitted = 0
        self._step_lock = Lock()

    def __iter__(self) -> "StreamController":
        return self

    def __next__(self) -> StreamChunk:
        if self._terminal is not None:
            raise StopIteration
        with self._step_lock:
            if self._terminal is not None:
                raise StopIteration
            return self._step()

    def __enter__(self) -> "StreamController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _step(self) -> StreamChunk:
        if self._token.cancelled:
            return self._finish(cancelled_chunk(self._token.reason))
        try:
            if self._iterator is None:
                self._iterator = iter(self._source(self._token))
            chunk = next(self._iterator)
        except StopIteration:
            if self._token.cancelled:
                return self._finish(cancelled_chunk(self._token.reason))
            return self._finish(final_chunk(synthetic_terminal=True))
        except Exception as exc:  # noqa: BLE001 - every failure becomes the terminal chunk
            if self._token.cancelled or isinstance(exc, CancelledError):
                return self._finish(cancelled_chunk(self._token.reason or str(exc)))
            return self._finish(error_chunk(exc))
        if self._token.cancelled:
            return self._finish(cancelled_chunk(self._token.reason))
        if chunk.is_final:
            return self._finish(chunk)
        self._emitted += 1
        return chunk

    def _finish(self, chunk: StreamChunk) -> StreamChunk:
        self._terminal = chunk
        self._close_source()
        if self._parent is not None:
            self._parent.unlink_child(self._token)
        if self._on_terminal is not None:
            self._on_terminal(chunk, self._emitted)
        return chunk

    def _close_source(self) -> None:
        iterator, self._iterator = self._iterator, None
        close = getattr(iterator, "close", None)
        if callable(close):
            with suppress(Exception):
                close()

    # API -----------------------------------------------------------------
    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation; the next ``next()`` yields the cancelled terminal chunk.

        Safe from any thread, any number of times, and after completion.
        """
        self._token.cancel(reason or "stream cancelled")

    def close(self, reason: str | None = None) -> None:
        """Cancel and release the backend stream now.

        If the stream had not terminated, its terminal (cancelled) chunk is
        recorded in :attr:`terminal` but not yielded; iteration stops.
        """
        reason = reason or "stream closed by consumer"
        self._token.cancel(reason)
        if not self._step_lock.acquire(blocking=False):
            # Another thread is inside next(); it observes the cancelled token.
            return
        try:
            if self._terminal is None:
                self._finish(cancelled_chunk(reason))
        finally:
            self._step_lock.release()

    def collect(self) -> Tuple[str, Optional[StreamChunk]]:
        """Drain the stream; return the concatenated content and the terminal chunk."""
        text, terminal = accumulate_chunks(self)
        return text, terminal if terminal is not None else self._terminal

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def finished(self) -> bool:  # noqa: D401 - short property
        """Whether the terminal chunk has been produced."""
        return self._terminal is not None

    @property
    def terminal(self) -> StreamChunk | None:
        return self._terminal

    @property
    def emitted(self) -> int:
        """Content chunks delivered so far (terminal excluded)."""
        return self._emitted

    @property
    def error(self) -> str | None:
        """Error content of the terminal chunk, if the stream failed."""
        if self._terminal is not None and self._terminal.is_error:
            return self._terminal.content or self._terminal.metadata.get("reason")
        return None


def accumulate_chunks(chunks: Iterable[StreamChunk]) -> Tuple[str, Optional[StreamChunk]]:
    """Join the content of non-terminal chunks; return it with the terminal chunk.

    Content of an error terminal chunk is not part of the text.
    """
    parts: List[str] = []
    terminal: Optional[StreamChunk] = None
    for chunk in chunks:
        if chunk.is_final:
            terminal = chunk
            if not chunk.is_error and chunk.content:
                parts.append(chunk.content)
            break
        parts.append(chunk.content)
    return "".join(parts), terminal


__all__ = [
    "ChunkSource",
    "StreamController",
    "accumulate_chunks",
    "error_chunk",
    "cancelled_chunk",
    "final_chunk",
]
