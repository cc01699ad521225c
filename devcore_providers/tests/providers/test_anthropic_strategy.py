"""Unit tests for the Anthropic strategy with a fake ``anthropic`` SDK."""
from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from devcore_providers.anthropic import strategy as anthropic_mod
from devcore_providers.anthropic.strategy import AnthropicStrategy
from devcore_providers.base.cancellation import CancellationToken, CancelledError
from devcore_providers.base.errors import BackendResponseError, ErrorCode, ProviderError
from devcore_providers.base.models import FinishReason, GenerationRequest, Message, ProviderConfig, ProviderId
from devcore_providers.config.defaults import ANTHROPIC_DEFAULT_MAX_TOKENS, MODEL_CATALOGS


def _message(text: str, stop_reason: str = "end_turn") -> Any:
    return SimpleNamespace(
        model="claude-sonnet-4-20250514",
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=12, output_tokens=8),
        stop_reason=stop_reason,
    )


class _FakeMessageStream:
    def __init__(self, texts: List[str], final: Any) -> None:
        self._texts = texts
        self._final = final
        self.closed = False

    def __enter__(self) -> "_FakeMessageStream":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def text_stream(self):
        for text in self._texts:
            if self.closed:
                raise RuntimeError("stream closed")
            yield text

    def get_final_message(self) -> Any:
        return self._final

    def close(self) -> None:
        self.closed = True


class _FakeAnthropicSDK:
    def __init__(self) -> None:
        self.clients: List[Dict[str, Any]] = []
        self.calls: List[Dict[str, Any]] = []
        self.response: Any = None
        self.stream_texts: List[str] = []
        self.streams: List[_FakeMessageStream] = []
        self.error: Optional[Exception] = None

    def Anthropic(self, **kwargs: Any) -> Any:  # noqa: N802 - mirrors SDK name
        self.clients.append(kwargs)
        return SimpleNamespace(messages=SimpleNamespace(create=self._create, stream=self._stream))

    def _create(self, **params: Any) -> Any:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return self.response

    def _stream(self, **params: Any) -> _FakeMessageStream:
        self.calls.append(params)
        stream = _FakeMessageStream(self.stream_texts, _message("".join(self.stream_texts), "max_tokens"))
        self.streams.append(stream)
        return stream


class _OverloadedError(Exception):
    status_code = 529


@pytest.fixture()
def sdk(monkeypatch: pytest.MonkeyPatch) -> _FakeAnthropicSDK:
    fake = _FakeAnthropicSDK()
    monkeypatch.setattr(anthropic_mod, "anthropic", fake)
    return fake


def _strategy() -> AnthropicStrategy:
    strategy = AnthropicStrategy()
    strategy.initialize(
        ProviderConfig(
            ProviderId.ANTHROPIC,
            "anthropic_api_key",
            "claude-sonnet-4-20250514",
            models=MODEL_CATALOGS[ProviderId.ANTHROPIC],
        ),
        "ak-test",
    )
    return strategy


def test_generate_defaults_max_tokens_and_folds_system(sdk: _FakeAnthropicSDK) -> None:
    sdk.response = _message("Hi there")
    req = GenerationRequest(
        provider_id="anthropic",
        system_instruction="be kind",
        messages=[Message("system", "no emojis"), Message("user", "hello")],
    )
    resp = _strategy().generate(req)
    assert resp.content == "Hi there"  # nosec B101 - pytest assertion in tests
    assert resp.finish_reason is FinishReason.STOP  # nosec B101 - pytest assertion in tests
    assert resp.usage.total_tokens == 20  # nosec B101 - pytest assertion in tests
    call = sdk.calls[-1]
    assert call["max_tokens"] == ANTHROPIC_DEFAULT_MAX_TOKENS  # nosec B101 - pytest assertion in tests
    assert call["system"] == "be kind\n\nno emojis"  # nosec B101 - pytest assertion in tests
    assert call["messages"] == [{"role": "user", "content": "hello"}]  # nosec B101
    assert sdk.clients == [{"api_key": "ak-test"}]  # nosec B101 - pytest assertion in tests


def test_overloaded_is_unavailable(sdk: _FakeAnthropicSDK) -> None:
    sdk.error = _OverloadedError("Overloaded")
    with pytest.raises(ProviderError) as info:
        _strategy().generate(GenerationRequest(provider_id="anthropic", prompt="x"))
    assert info.value.code is ErrorCode.UNAVAILABLE and info.value.retryable  # nosec B101


def test_empty_content_is_backend_error(sdk: _FakeAnthropicSDK) -> None:
    sdk.response = SimpleNamespace(content=[], usage=None, stop_reason="end_turn", model="m")
    with pytest.raises(BackendResponseError):
        _strategy().generate(GenerationRequest(provider_id="anthropic", prompt="x"))


def test_generate_json_embeds_schema(sdk: _FakeAnthropicSDK) -> None:
    sdk.response = _message('```json\n{"ok": true}\n```')
    schema = {"type": "object", "properties": {"ok": {"type": "boolean"}}}
    value = _strategy().generate_json(GenerationRequest(provider_id="anthropic", prompt="q"), schema)
    assert value == {"ok": True}  # nosec B101 - pytest assertion in tests
    assert json.dumps(schema) in sdk.calls[-1]["system"]  # nosec B101 - pytest assertion in tests


def test_stream_with_final_usage(sdk: _FakeAnthropicSDK) -> None:
    sdk.stream_texts = ["Once ", "upon"]
    chunks = list(
        _strategy().stream_generate(GenerationRequest(provider_id="anthropic", prompt="story", max_output_tokens=5))
    )
    assert [c.content for c in chunks[:-1]] == ["Once ", "upon"]  # nosec B101 - pytest assertion in tests
    assert chunks[-1].metadata["finish_reason"] == "max_tokens"  # nosec B101 - pytest assertion in tests
    assert chunks[-1].metadata["usage"]["prompt_tokens"] == 12  # nosec B101 - pytest assertion in tests
    assert sdk.calls[-1]["max_tokens"] == 5  # nosec B101 - pytest assertion in tests
    assert sdk.streams[-1].closed  # nosec B101 - pytest assertion in tests


def test_cancel_closes_message_stream(sdk: _FakeAnthropicSDK) -> None:
    sdk.stream_texts = ["a", "b", "c"]
    token = CancellationToken()
    gen = _strategy().stream_generate(GenerationRequest(provider_id="anthropic", prompt="x"), token)
    next(gen)
    token.cancel("consumer left")
    assert sdk.streams[-1].closed  # nosec B101 - pytest assertion in tests
    with pytest.raises(CancelledError):
        next(gen)
