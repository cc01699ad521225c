"""OpenAI strategy built on the ``openai`` SDK (Chat Completions API).

- ``generate``: ``client.chat.completions.create``
- ``stream_generate``: same call with ``stream=True`` and
  ``stream_options={"include_usage": True}``; usage arrives on the last event.
- ``generate_json``: ``response_format`` of type ``json_schema``.

``base_url`` from the provider config is passed to the client, so any
OpenAI-compatible endpoint works. SDK exceptions are classified into
``ProviderError``; cancelling the token closes the HTTP stream.
"""

from __future__ import annotations

import time
from contextlib import suppress
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
from ..base.usage import build_usage, extract_openai_usage

try:
    from openai import OpenAI  # type: ignore
except ImportError:  # pragma: no cover - dependency declared in pyproject
    OpenAI = None  # type: ignore

JSON_SCHEMA_NAME = "structured_output"


def build_messages(request: GenerationRequest) -> List[Dict[str, str]]:
    """Map the request to Chat Completions messages (system instruction first)."""
    messages: List[Dict[str, str]] = []
    if request.system_instruction:
        messages.append({"role": "system", "content": request.system_instruction})
    messages.extend({"role": m.role, "content": m.content} for m in request.resolved_messages())
    return messages


class OpenAIStrategy(ProviderStrategy):
    """Provider strategy for OpenAI and OpenAI-compatible endpoints."""

    provider_id = ProviderId.OPENAI

    def _create_client(self, config: ProviderConfig, credential: str) -> Any:
        if OpenAI is None:
            raise RuntimeError("openai SDK not installed")
        kwargs: Dict[str, Any] = {"api_key": credential}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        return OpenAI(**kwargs)

    def _params(self, request: GenerationRequest, model: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"model": model, "messages": build_messages(request)}
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.max_output_tokens is not None:
            params["max_completion_tokens"] = request.max_output_tokens
        return params

    def _complete(self, params: Dict[str, Any], model: str, token: CancellationToken) -> Any:
        client = self._require_client()
        token.raise_if_cancelled()
        try:
            resp = client.chat.completions.create(**params)
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
        resp = self._complete(self._params(request, model), model, token)
        choice = resp.choices[0] if getattr(resp, "choices", None) else None
        text = getattr(getattr(choice, "message", None), "content", None)
        if not text:
            raise BackendResponseError("openai returned an empty completion", provider=self.provider_id.value)
        usage = extract_openai_usage(resp, self._model_info(model))
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
            finish_reason=FinishReason.from_vendor(getattr(choice, "finish_reason", None)),
        )

    def stream_generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> Iterator[StreamChunk]:
        token = ensure_token(token)
        model = self._resolve_model(request)
        params = self._params(request, model)
        params["stream"] = True
        params["stream_options"] = {"include_usage": True}
        stream = self._complete(params, model, token)
        remove_callback = token.add_callback(stream.close)
        usage = None
        finish_reason = None
        emitted = 0
        try:
            for event in stream:
                token.raise_if_cancelled()
                if getattr(event, "usage", None) is not None:
                    usage = extract_openai_usage(event, self._model_info(model))
                choices = getattr(event, "choices", None) or []
                if not choices:
                    continue
                finish_reason = choices[0].finish_reason or finish_reason
                delta = getattr(choices[0].delta, "content", None)
                if delta:
                    emitted += 1
                    yield StreamChunk(content=delta)
        except (GatewayError, CancelledError):
            raise
        except Exception as exc:
            if token.cancelled:
                raise CancelledError(token.reason or "stream cancelled") from exc
            raise self._translate_error(exc, model) from exc
        finally:
            remove_callback()
            with suppress(Exception):
                stream.close()
        normalized_log_event(
            self._logger, "stream.end", self._ctx(model), phase="finalize", emitted=emitted > 0, tokens=usage
        )
        yield final_chunk(
            model=model,
            finish_reason=(FinishReason.from_vendor(finish_reason) or FinishReason.STOP).value,
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
        params = self._params(request, model)
        params["response_format"] = {
            "type": "json_schema",
            "json_schema": {"name": JSON_SCHEMA_NAME, "schema": schema},
        }
        resp = self._complete(params, model, token)
        choice = resp.choices[0] if getattr(resp, "choices", None) else None
        text = getattr(getattr(choice, "message", None), "content", None)
        normalized_log_event(
            self._logger,
            "chat.json",
            self._ctx(model),
            phase="finalize",
            tokens=extract_openai_usage(resp, self._model_info(model)),
        )
        return parse_json_text(text, provider=self.provider_id.value)


__all__ = ["OpenAIStrategy", "build_messages"]
