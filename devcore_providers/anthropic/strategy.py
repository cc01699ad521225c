"""Anthropic strategy using the ``anthropic`` SDK Messages API.

``client.messages.create`` serves single-shot calls; streaming uses the
``client.messages.stream(...)`` context manager and its ``text_stream``, with
usage read from ``get_final_message()``. ``max_tokens`` is mandatory for this
API, so requests without ``max_output_tokens`` use
``ANTHROPIC_DEFAULT_MAX_TOKENS``.

JSON mode appends the schema to the system prompt and parses the reply; a
reply that is not valid JSON raises ``BackendResponseError``.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Iterator, List, Optional

from ..base.cancellation import CancellationToken, CancelledError, ensure_token
from ..base.errors import BackendResponseError, GatewayError
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
from ..base.usage import build_usage, extract_anthropic_usage
from ..config.defaults import ANTHROPIC_DEFAULT_MAX_TOKENS

try:
    import anthropic  # type: ignore
except ImportError:  # pragma: no cover - dependency declared in pyproject
    anthropic = None  # type: ignore

JSON_INSTRUCTION = (
    "Respond with a single JSON value that conforms to this JSON schema. "
    "Output only the JSON, without Markdown fences or commentary.\nSchema:\n{schema}"
)


def _response_text(resp: Any) -> str:
    blocks = getattr(resp, "content", None) or []
    return "".join(getattr(b, "text", "") for b in blocks if getattr(b, "type", None) == "text")


class AnthropicStrategy(ProviderStrategy):
    """Provider strategy for Anthropic Claude models."""

    provider_id = ProviderId.ANTHROPIC

    def _create_client(self, config: ProviderConfig, credential: str) -> Any:
        if anthropic is None:
            raise RuntimeError("anthropic SDK not installed")
        kwargs: Dict[str, Any] = {"api_key": credential}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        return anthropic.Anthropic(**kwargs)

    def _params(
        self, request: GenerationRequest, model: str, schema: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        system_parts: List[str] = [request.system_instruction] if request.system_instruction else []
        messages: List[Dict[str, str]] = []
        for message in request.resolved_messages():
            if message.role == "system":
                system_parts.append(message.content)
            else:
                messages.append({"role": message.role, "content": message.content})
        if schema is not None:
            system_parts.append(JSON_INSTRUCTION.format(schema=json.dumps(schema, ensure_ascii=False)))
        params: Dict[str, Any] = {
            "model": model,
            "max_tokens": request.max_output_tokens or ANTHROPIC_DEFAULT_MAX_TOKENS,
            "messages": messages,
        }
        if system_parts:
            params["system"] = "\n\n".join(system_parts)
        if request.temperature is not None:
            params["temperature"] = request.temperature
        return params

    def _create(self, params: Dict[str, Any], model: str, token: CancellationToken) -> Any:
        client = self._require_client()
        token.raise_if_cancelled()
        try:
            resp = client.messages.create(**params)
        except Exception as exc:
            raise self._translate_error(exc, model) from exc
        token.raise_if_cancelled()
        return resp

    def generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> GenerationResponse:
        token = ensure_token(token)
        model = self._resolve_model(request)
        ctx = self._ctx(model)
        normalized_log_event(self._logger, "chat.start", ctx, phase="start")
        t0 = time.perf_counter()
        resp = self._create(self._params(request, model), model, token)
        text = _response_text(resp)
        if not text:
            raise BackendResponseError("anthropic returned no text content", provider=self.provider_id.value)
        usage = extract_anthropic_usage(resp, self._model_info(model))
        normalized_log_event(
            self._logger,
            "chat.end",
            ctx,
            phase="finalize",
            tokens=usage,
            latency_ms=(time.perf_counter() - t0) * 1000.0,
        )
        return GenerationResponse(
            content=text,
            model=getattr(resp, "model", None) or model,
            usage=usage,
            finish_reason=FinishReason.from_vendor(getattr(resp, "stop_reason", None)),
        )

    def stream_generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> Iterator[StreamChunk]:
        token = ensure_token(token)
        client = self._require_client()
        model = self._resolve_model(request)
        token.raise_if_cancelled()
        usage = None
        finish_reason = None
        emitted = 0
        try:
            with client.messages.stream(**self._params(request, model)) as stream:
                remove_callback = token.add_callback(stream.close)
                try:
                    for text in stream.text_stream:
                        token.raise_if_cancelled()
                        if text:
                            emitted += 1
                            yield StreamChunk(content=text)
                    final = stream.get_final_message()
                finally:
                    remove_callback()
                usage = extract_anthropic_usage(final, self._model_info(model))
                finish_reason = FinishReason.from_vendor(getattr(final, "stop_reason", None))
        except (GatewayError, CancelledError):
            raise
        except Exception as exc:
            if token.cancelled:
                raise CancelledError(token.reason or "stream cancelled") from exc
            raise self._translate_error(exc, model) from exc
        normalized_log_event(
            self._logger, "stream.end", self._ctx(model), phase="finalize", emitted=emitted > 0, tokens=usage
        )
        yield final_chunk(
            model=model,
            finish_reason=(finish_reason or FinishReason.STOP).value,
            usage=(usage or build_usage()).to_dict(),
        )

    def generate_json(
        self,
        request: GenerationRequest,
        schema: Dict[str, Any],
        token: Optional[CancellationToken] = None,
    ) -> Any:
        token = ensure_token(token)
        model = self._resolve_model(request)
        resp = self._create(self._params(request, model, schema), model, token)
        normalized_log_event(
            self._logger,
            "chat.json",
            self._ctx(model),
            phase="finalize",
            tokens=extract_anthropic_usage(resp, self._model_info(model)),
        )
        return parse_json_text(_response_text(resp), provider=self.provider_id.value)


__all__ = ["AnthropicStrategy"]
