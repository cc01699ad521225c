"""Unit tests for the Gemini strategy.

These tests stub the google-genai SDK to avoid network calls. The fake
exposes ``genai.Client(api_key=...)`` with ``client.models.generate_content``
and ``client.models.generate_content_stream``, the only surface the strategy
uses.
"""
from __future__ import annotations

import threading
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from devcore_providers.base.cancellation import CancellationToken, CancelledError
from devcore_providers.base.errors import BackendResponseError, ErrorCode, ProviderError
from devcore_providers.base.models import FinishReason, GenerationRequest, Message, ProviderConfig, ProviderId
from devcore_providers.config.defaults import MODEL_CATALOGS
from devcore_providers.gemini import strategy as gemini_mod
from devcore_providers.gemini.strategy import GeminiStrategy, build_contents


class _APIError(Exception):
    """Shape of ``google.genai.errors.APIError``: an int ``code``."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"{code} {message}")
        self.code = code


class _BlockingStream:
    """Yields one event, then blocks like a stalled HTTP read until closed."""

    def __init__(self) -> None:
        self._closed = threading.Event()
        self._sent = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __iter__(self) -> "_BlockingStream":
        return self

    def __next__(self) -> Any:
        if not self._sent:
            self._sent = True
            return SimpleNamespace(text="first", usage_metadata=None, candidates=[])
        if not self._closed.wait(2.0):
            raise AssertionError("stream was never closed")
        raise RuntimeError("connection closed")

    def close(self) -> None:
        self._closed.set()


def _response(text: Optional[str], finish: str = "STOP") -> Any:
    return SimpleNamespace(
        text=text,
        model_version=None,
        candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name=finish))],
        usage_metadata=SimpleNamespace(prompt_token_count=4, candidates_token_count=6, total_token_count=10),
    )


class _FakeGenai:
    def __init__(self) -> None:
        self.clients: List[Dict[str, Any]] = []
        self.calls: List[Dict[str, Any]] = []
        self.response: Any = None
        self.stream_events: List[Any] = []
        self.stream: Any = None
        self.error: Optional[Exception] = None

    def Client(self, **kwargs: Any) -> Any:  # noqa: N802 - mirrors SDK name
        self.clients.append(kwargs)
        models = SimpleNamespace(
            generate_content=self._generate, generate_content_stream=self._stream
        )
        return SimpleNamespace(models=models)

    def _generate(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response

    def _stream(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.stream is not None:
            return self.stream
        return iter(self.stream_events)


@pytest.fixture()
def genai(monkeypatch: pytest.MonkeyPatch) -> _FakeGenai:
    fake = _FakeGenai()
    monkeypatch.setattr(gemini_mod, "genai", fake)
    return fake


def _strategy(base_url: Optional[str] = None) -> GeminiStrategy:
    strategy = GeminiStrategy()
    strategy.initialize(
        ProviderConfig(
            ProviderId.GEMINI,
            "gemini_api_key",
            "gemini-2.5-flash",
            base_url=base_url,
            models=MODEL_CATALOGS[ProviderId.GEMINI],
        ),
        "g-key",
    )
    return strategy


def test_build_contents_prompt_and_chat() -> None:
    contents, system = build_contents(GenerationRequest(provider_id="gemini", prompt="hi", system_instruction="s"))
    assert contents == "hi" and system == "s"  # nosec B101 - pytest assertion in tests

    req = GenerationRequest(
        provider_id="gemini",
        messages=[Message("system", "rules"), Message("user", "q"), Message("assistant", "a")],
    )
    contents, system = build_contents(req)
    assert system == "rules"  # nosec B101 - pytest assertion in tests
    assert contents == [  # nosec B101 - pytest assertion in tests
        {"role": "user", "parts": [{"text": "q"}]},
        {"role": "model", "parts": [{"text": "a"}]},
    ]


def test_client_per_credential(genai: _FakeGenai) -> None:
    _strategy()
    _strategy(base_url="https://proxy.example")
    assert genai.clients == [  # nosec B101 - pytest assertion in tests
        {"api_key": "g-key"},
        {"api_key": "g-key", "http_options": {"base_url": "https://proxy.example"}},
    ]


def test_missing_sdk(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gemini_mod, "genai", None)
    with pytest.raises(RuntimeError, match="google-genai"):
        _strategy()


def test_generate(genai: _FakeGenai) -> None:
    genai.response = _response("Bonjour")
    resp = _strategy().generate(GenerationRequest(provider_id="gemini", prompt="hello", temperature=0.5))
    assert resp.content == "Bonjour"  # nosec B101 - pytest assertion in tests
    assert resp.model == "gemini-2.5-flash"  # nosec B101 - pytest assertion in tests
    assert resp.finish_reason is FinishReason.STOP  # nosec B101 - pytest assertion in tests
    assert resp.usage.total_tokens == 10  # nosec B101 - pytest assertion in tests
    call = genai.calls[-1]
    assert call["model"] == "gemini-2.5-flash" and call["contents"] == "hello"  # nosec B101
    assert call["config"] == {"temperature": 0.5}  # nosec B101 - pytest assertion in tests


def test_blocked_response_is_backend_error(genai: _FakeGenai) -> None:
    genai.response = _response(None, finish="SAFETY")
    with pytest.raises(BackendResponseError, match="safety"):
        _strategy().generate(GenerationRequest(provider_id="gemini", prompt="x"))


def test_api_error_classified(genai: _FakeGenai) -> None:
    genai.error = _APIError(429, "RESOURCE_EXHAUSTED")
    with pytest.raises(ProviderError) as info:
        _strategy().generate(GenerationRequest(provider_id="gemini", prompt="x"))
    assert info.value.code is ErrorCode.RATE_LIMIT  # nosec B101 - pytest assertion in tests


def test_generate_json_sets_mime_type_and_schema(genai: _FakeGenai) -> None:
    genai.response = _response('{"colors": ["red"]}')
    schema = {"type": "object", "properties": {"colors": {"type": "array", "items": {"type": "string"}}}}
    req = GenerationRequest(provider_id="gemini", prompt="palette", system_instruction="designer")
    assert _strategy().generate_json(req, schema) == {"colors": ["red"]}  # nosec B101
    config = genai.calls[-1]["config"]
    assert config["response_mime_type"] == "application/json"  # nosec B101 - pytest assertion in tests
    assert config["response_schema"] == schema  # nosec B101 - pytest assertion in tests
    assert config["system_instruction"] == "designer"  # nosec B101 - pytest assertion in tests


def test_stream(genai: _FakeGenai) -> None:
    genai.stream_events = [
        SimpleNamespace(text="alpha", usage_metadata=None, candidates=[]),
        SimpleNamespace(
            text="beta",
            usage_metadata=SimpleNamespace(prompt_token_count=1, candidates_token_count=2, total_token_count=3),
            candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name="MAX_TOKENS"))],
        ),
    ]
    chunks = list(_strategy().stream_generate(GenerationRequest(provider_id="gemini", prompt="x")))
    assert [c.content for c in chunks] == ["alpha", "beta", ""]  # nosec B101 - pytest assertion in tests
    assert chunks[-1].metadata["finish_reason"] == "max_tokens"  # nosec B101 - pytest assertion in tests
    assert chunks[-1].metadata["usage"]["total_tokens"] == 3  # nosec B101 - pytest assertion in tests


def test_stream_stops_when_cancelled(genai: _FakeGenai) -> None:
    genai.stream_events = [SimpleNamespace(text=t, usage_metadata=None, candidates=[]) for t in "abc"]
    token = CancellationToken()
    gen = _strategy().stream_generate(GenerationRequest(provider_id="gemini", prompt="x"), token)
    next(gen)
    token.cancel()
    with pytest.raises(CancelledError):
        next(gen)


def test_stream_open_error(genai: _FakeGenai) -> None:
    genai.error = _APIError(503, "UNAVAILABLE")
    with pytest.raises(ProviderError) as info:
        list(_strategy().stream_generate(GenerationRequest(provider_id="gemini", prompt="x")))
    assert info.value.code is ErrorCode.UNAVAILABLE  # nosec B101 - pytest assertion in tests


def test_cancel_from_another_thread_closes_blocked_stream(genai: _FakeGenai) -> None:
    genai.stream = _BlockingStream()
    token = CancellationToken()
    gen = _strategy().stream_generate(GenerationRequest(provider_id="gemini", prompt="x"), token)
    assert next(gen).content == "first"  # nosec B101 - pytest assertion in tests
    timer = threading.Timer(0.05, token.cancel, args=("consumer left",))
    timer.start()
    with pytest.raises(CancelledError):
        next(gen)
    timer.join()
    assert genai.stream.closed  # nosec B101 - pytest assertion in tests
