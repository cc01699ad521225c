"""Deterministic mock strategy for offline use and tests.

Purpose
-------
Implements the full ``ProviderStrategy`` contract without any network
traffic so the registry, the orchestration service and streaming consumers
can be exercised end to end.

Behaviour
---------
- ``generate`` returns ``"echo: <last user message>"``; token counts are
  whitespace word counts.
- ``stream_generate`` yields the same text in ``chunk_size``-character pieces,
  then a final chunk carrying usage.
- ``generate_json`` returns ``json_payload`` when set, parses ``json_text``
  when set, or else builds a value from the schema (first enum value, empty
  string, zero, ``False``, empty list; objects recurse into ``properties``).

Test switches (``fail_initialize``, ``initialize_delay``, ``chunk_delay``,
``fail_stream_after``) and call records (``initialize_calls``,
``generate_calls``) let tests observe exactly what the core did.
"""

from __future__ import annotations

import copy
import threading
import time
from typing import Any, Dict, Iterator, List, Optional

from ..base.cancellation import CancellationToken, ensure_token
from ..base.errors import ErrorCode, ProviderError
from ..base.interfaces import ProviderStrategy
from ..base.json_output import parse_json_text
from ..base.logging import normalized_log_event
from ..base.models import (
    FinishReason,
    GenerationRequest,
    GenerationResponse,
    ProviderConfig,
    ProviderId,
    StreamChunk,
)
from ..base.streaming import final_chunk
from ..base.usage import build_usage

ECHO_PREFIX = "echo: "


def example_from_schema(schema: Dict[str, Any]) -> Any:
    """Build the simplest value that satisfies a JSON schema."""
    if "enum" in schema and schema["enum"]:
        return schema["enum"][0]
    kind = schema.get("type")
    if isinstance(kind, list):
        kind = next((k for k in kind if k != "null"), None)
    kind = kind.lower() if isinstance(kind, str) else kind
    if kind == "object" or (kind is None and "properties" in schema):
        return {name: example_from_schema(sub) for name, sub in schema.get("properties", {}).items()}
    if kind == "array":
        return []
    if kind in ("number", "integer"):
        return 0
    if kind == "boolean":
        return False
    if kind == "string":
        return ""
    return None


class MockStrategy(ProviderStrategy):
    """Echo backend implementing the provider contract in memory."""

    provider_id = ProviderId.MOCK

    def __init__(
        self,
        *,
        chunk_size: int = 4,
        chunk_delay: float = 0.0,
        initialize_delay: float = 0.0,
        fail_initialize: Optional[BaseException] = None,
        fail_stream_after: Optional[int] = None,
        json_payload: Any = None,
        json_text: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.chunk_size = max(1, chunk_size)
        self.chunk_delay = chunk_delay
        self.initialize_delay = initialize_delay
        self.fail_initialize = fail_initialize
        self.fail_stream_after = fail_stream_after
        self.json_payload = json_payload
        self.json_text = json_text
        self.initialize_calls: List[str] = []
        self.generate_calls = 0
        self._calls_lock = threading.Lock()

    def _create_client(self, config: ProviderConfig, credential: str) -> Any:
        with self._calls_lock:
            self.initialize_calls.append(credential)
        if self.initialize_delay:
            time.sleep(self.initialize_delay)
        if self.fail_initialize is not None:
            raise self.fail_initialize
        return {"credential_len": len(credential), "base_url": config.base_url}

    @property
    def last_credential(self) -> Optional[str]:
        with self._calls_lock:
            return self.initialize_calls[-1] if self.initialize_calls else None

    def _record_call(self) -> None:
        with self._calls_lock:
            self.generate_calls += 1

    @staticmethod
    def echo_text(request: GenerationRequest) -> str:
        user_turns = [m.content for m in request.resolved_messages() if m.role == "user"]
        return ECHO_PREFIX + (user_turns[-1] if user_turns else "")

    def generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> GenerationResponse:
        self._require_client()
        token = ensure_token(token)
        token.raise_if_cancelled()
        self._record_call()
        model = self._resolve_model(request)
        text = self.echo_text(request)
        usage = self._usage(request, text, model)
        normalized_log_event(self._logger, "mock.generate", self._ctx(model), phase="finalize", tokens=usage)
        return GenerationResponse(content=text, model=model, usage=usage, finish_reason=FinishReason.STOP)

    def stream_generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> Iterator[StreamChunk]:
        self._require_client()
        token = ensure_token(token)
        self._record_call()
        model = self._resolve_model(request)
        text = self.echo_text(request)
        pieces = [text[i : i + self.chunk_size] for i in range(0, len(text), self.chunk_size)]
        for index, piece in enumerate(pieces):
            if self.fail_stream_after is not None and index >= self.fail_stream_after:
                raise ProviderError(ErrorCode.TRANSIENT, "mock stream interrupted", "mock", model)
            if self.chunk_delay and token.wait(self.chunk_delay):
                return
            token.raise_if_cancelled()
            yield StreamChunk(content=piece, metadata={"index": index})
        usage = self._usage(request, text, model)
        yield final_chunk(model=model, finish_reason=FinishReason.STOP.value, usage=usage.to_dict())

    def generate_json(
        self,
        request: GenerationRequest,
        schema: Dict[str, Any],
        token: Optional[CancellationToken] = None,
    ) -> Any:
        self._require_client()
        ensure_token(token).raise_if_cancelled()
        self._record_call()
        if self.json_payload is not None:
            return copy.deepcopy(self.json_payload)
        if self.json_text is not None:
            return parse_json_text(self.json_text, provider=self.provider_id.value)
        return example_from_schema(schema)

    def _usage(self, request: GenerationRequest, text: str, model: str):
        prompt_words = sum(len(m.content.split()) for m in request.resolved_messages())
        return build_usage(prompt_words, len(text.split()), None, self._model_info(model))


__all__ = ["MockStrategy", "example_from_schema", "ECHO_PREFIX"]
