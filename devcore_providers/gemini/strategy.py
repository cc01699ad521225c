"""Gemini strategy using the ``google-genai`` SDK.

Uses one ``genai.Client(api_key=...)`` per credential; the client is rebuilt
only when ``initialize`` sees a different credential or config. Requests go
through ``client.models.generate_content`` and
``client.models.generate_content_stream`` with a ``GenerateContentConfig``
expressed as a dict:

- ``system_instruction``, ``temperature``, ``max_output_tokens``
- JSON mode adds ``response_mime_type="application/json"`` and
  ``response_schema``; the reply text is then parsed as JSON.

Chat turns map ``assistant`` to Gemini's ``model`` role; ``system`` turns are
folded into the system instruction.
"""

from __future__ import annotations

import time
from contextlib import suppress
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

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
from ..base.usage import build_usage, extract_gemini_usage

try:
    from google import genai  # type: ignore
except ImportError:  # pragma: no cover - dependency declared in pyproject
    genai = None  # type: ignore

Contents = Union[str, List[Dict[str, Any]]]


def build_contents(request: GenerationRequest) -> Tuple[Contents, Optional[str]]:
    """Return ``(contents, system_instruction)`` for a request."""
    system_parts = [request.system_instruction] if request.system_instruction else []
    if not request.messages:
        system = "\n\n".join(system_parts) or None
        return request.prompt or "", system
    contents: List[Dict[str, Any]] = []
    for message in request.messages:
        if message.role == "system":
            system_parts.append(message.content)
            continue
        role = "model" if message.role == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": message.content}]})
    return contents, "\n\n".join(system_parts) or None


def _finish_reason(resp: Any) -> Optional[FinishReason]:
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return None
    return FinishReason.from_vendor(getattr(candidates[0], "finish_reason", None))


def _close_stream(stream: Any) -> None:
    """Close a google-genai response stream (a generator or an object with ``close``)."""
    close = getattr(stream, "close", None)
    if callable(close):
        with suppress(Exception):
            close()


class GeminiStrategy(ProviderStrategy):
    """Provider strategy for Google Gemini models."""

    provider_id = ProviderId.GEMINI

    def _create_client(self, config: ProviderConfig, credential: str) -> Any:
        if genai is None:
            raise RuntimeError("google-genai SDK not installed")
        kwargs: Dict[str, Any] = {"api_key": credential}
        if config.base_url:
            kwargs["http_options"] = {"base_url": config.base_url}
        return genai.Client(**kwargs)

    def _call_args(
        self, request: GenerationRequest, model: str, schema: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        contents, system = build_contents(request)
        config: Dict[str, Any] = {}
        if system:
            config["system_instruction"] = system
        if request.temperature is not None:
            config["temperature"] = request.temperature
        if request.max_output_tokens is not None:
            config["max_output_tokens"] = request.max_output_tokens
        if schema is not None:
            config["response_mime_type"] = "application/json"
            config["response_schema"] = schema
        return {"model": model, "contents": contents, "config": config or None}

    def _generate(self, args: Dict[str, Any], model: str, token: CancellationToken) -> Any:
        client = self._require_client()
        token.raise_if_cancelled()
        try:
            resp = client.models.generate_content(**args)
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
        resp = self._generate(self._call_args(request, model), model, token)
        text = getattr(resp, "text", None)
        finish_reason = _finish_reason(resp)
        if not text:
            reason = finish_reason.value if finish_reason else "unknown"
            raise BackendResponseError(
                f"gemini returned no text (finish_reason={reason})", provider=self.provider_id.value
            )
        usage = extract_gemini_usage(resp, self._model_info(model))
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
            model=getattr(resp, "model_version", None) or model,
            usage=usage,
            finish_reason=finish_reason,
        )

    def stream_generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> Iterator[StreamChunk]:
        token = ensure_token(token)
        client = self._require_client()
        model = self._resolve_model(request)
        token.raise_if_cancelled()
        try:
            stream = client.models.generate_content_stream(**self._call_args(request, model))
        except Exception as exc:
            raise self._translate_error(exc, model) from exc
        remove_callback = token.add_callback(lambda: _close_stream(stream))
        usage = None
        finish_reason = None
        emitted = 0
        try:
            for event in stream:
                token.raise_if_cancelled()
                if getattr(event, "usage_metadata", None) is not None:
                    usage = extract_gemini_usage(event, self._model_info(model))
                finish_reason = _finish_reason(event) or finish_reason
                text = getattr(event, "text", None)
                if text:
                    emitted += 1
                    yield StreamChunk(content=text)
        except (GatewayError, CancelledError):
            raise
        except Exception as exc:
            if token.cancelled:
                raise CancelledError(token.reason or "stream cancelled") from exc
            raise self._translate_error(exc, model) from exc
        finally:
            remove_callback()
            _close_stream(stream)
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
        resp = self._generate(self._call_args(request, model, schema), model, token)
        normalized_log_event(
            self._logger,
            "chat.json",
            self._ctx(model),
            phase="finalize",
            tokens=extract_gemini_usage(resp, self._model_info(model)),
        )
        return parse_json_text(getattr(resp, "text", None), provider=self.provider_id.value)


__all__ = ["GeminiStrategy", "build_contents"]
