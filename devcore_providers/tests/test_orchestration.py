"""Orchestration service: dispatch, error normalization, JSON mode, request states."""

from __future__ import annotations

import threading
import time

import pytest

from devcore_providers.base.cancellation import CancellationToken, CancelledError
from devcore_providers.base.errors import (
    BackendResponseError,
    InitializationFailedError,
    InvalidRequestError,
    NotConfiguredError,
    NotRegisteredError,
    SecretNotFoundError,
)
from devcore_providers.base.models import FinishReason, GenerationRequest, Message, ProviderConfig, ProviderId
from devcore_providers.mock import MockStrategy
from devcore_providers.registry import ProviderRegistry
from devcore_providers.secrets import InMemorySecretResolver
from devcore_providers.service import OrchestrationService

class _SlowMock(MockStrategy):
    """Answers after a delay without looking at the token."""

    def generate(self, request, token=None):
        time.sleep(0.2)
        return super().generate(request)


_SCHEMA = {
    "type": "object",
    "properties": {"answer": {"type": "string"}, "score": {"type": "integer"}},
    "required": ["answer", "score"],
}


def _service_with(strategy: MockStrategy, secrets=None) -> OrchestrationService:
    reg = ProviderRegistry(InMemorySecretResolver({"k1": "secret-abc"} if secrets is None else secrets))
    reg.register(strategy)
    reg.load_configs([ProviderConfig(ProviderId.MOCK, "k1", "mock-echo")])
    return OrchestrationService(reg)


class TestGenerateContent:
    def test_echo_through_mock(self, service, mock_strategy) -> None:
        resp = service.generate_content(GenerationRequest(provider_id=ProviderId.MOCK, prompt="hi"))
        assert resp.content == "echo: hi"  # nosec B101 - pytest assertion in tests
        assert resp.model == "mock-echo"  # nosec B101 - pytest assertion in tests
        assert resp.finish_reason is FinishReason.STOP  # nosec B101 - pytest assertion in tests
        assert mock_strategy.initialize_calls == ["secret-abc"]  # nosec B101 - pytest assertion in tests

        service.generate_content(GenerationRequest(provider_id="mock", prompt="again"))
        assert mock_strategy.initialize_calls == ["secret-abc"]  # nosec B101 - pytest assertion in tests

    def test_mapping_request_and_messages(self, service) -> None:
        resp = service.generate_content(
            {
                "provider_id": "mock",
                "model": "mock-echo",
                "messages": [
                    {"role": "user", "content": "first"},
                    {"role": "assistant", "content": "ok"},
                    {"role": "user", "content": "second"},
                ],
            }
        )
        assert resp.content == "echo: second"  # nosec B101 - pytest assertion in tests

    def test_request_model_overrides_default(self, service) -> None:
        resp = service.generate_content(GenerationRequest(provider_id="mock", model="mock-other", prompt="x"))
        assert resp.model == "mock-other"  # nosec B101 - pytest assertion in tests


class TestInvalidRequests:
    @pytest.mark.parametrize("provider_id", [None, "", "   "])
    def test_missing_provider_id(self, service, mock_strategy, provider_id) -> None:
        with pytest.raises(InvalidRequestError):
            service.generate_content(GenerationRequest(provider_id=provider_id, prompt="hi"))
        assert mock_strategy.initialize_calls == []  # nosec B101 - pytest assertion in tests

    def test_active_provider_is_not_a_default(self, registry, service, mock_strategy) -> None:
        registry.set_active("mock")
        with pytest.raises(InvalidRequestError, match="no provider id"):
            service.generate_content(GenerationRequest(provider_id=None, prompt="hi"))
        assert mock_strategy.generate_calls == 0  # nosec B101 - pytest assertion in tests

    def test_unknown_provider_is_invalid_request(self, service) -> None:
        with pytest.raises(InvalidRequestError, match="not supported or configured") as info:
            service.generate_content(GenerationRequest(provider_id="cohere", prompt="hi"))
        assert isinstance(info.value.__cause__, NotRegisteredError)  # nosec B101 - pytest assertion in tests

    def test_unregistered_provider_is_invalid_request(self, service) -> None:
        with pytest.raises(InvalidRequestError) as info:
            service.generate_content(GenerationRequest(provider_id=ProviderId.OPENAI, prompt="hi"))
        assert isinstance(info.value.__cause__, NotRegisteredError)  # nosec B101 - pytest assertion in tests

    def test_unconfigured_provider_is_invalid_request(self) -> None:
        reg = ProviderRegistry(InMemorySecretResolver())
        reg.register(MockStrategy())
        service = OrchestrationService(reg)
        with pytest.raises(InvalidRequestError) as info:
            service.generate_content(GenerationRequest(provider_id="mock", prompt="hi"))
        assert isinstance(info.value.__cause__, NotConfiguredError)  # nosec B101 - pytest assertion in tests

    @pytest.mark.parametrize(
        "request_data",
        [
            {"provider_id": "mock"},
            {"provider_id": "mock", "prompt": "   "},
            {"provider_id": "mock", "prompt": "hi", "temperature": 5},
            {"provider_id": "mock", "prompt": "hi", "max_output_tokens": 0},
            {"provider_id": "mock", "prompt": "hi", "messages": [{"role": "user", "content": "x"}]},
            {"provider_id": "mock", "prompt": "hi", "unexpected": True},
            {"provider_id": "mock", "messages": [{"role": "robot", "content": "x"}]},
        ],
    )
    def test_malformed_requests(self, service, mock_strategy, request_data) -> None:
        with pytest.raises(InvalidRequestError):
            service.generate_content(request_data)
        assert mock_strategy.generate_calls == 0  # nosec B101 - pytest assertion in tests

    def test_unsupported_request_type(self, service) -> None:
        with pytest.raises(InvalidRequestError):
            service.generate_content("just a string")  # type: ignore[arg-type]


class TestErrorsBubble:
    def test_secret_not_found_is_not_normalized(self) -> None:
        service = _service_with(MockStrategy(), secrets={})
        with pytest.raises(SecretNotFoundError):
            service.generate_content(GenerationRequest(provider_id="mock", prompt="hi"))

    def test_initialization_failure_is_not_normalized(self) -> None:
        service = _service_with(MockStrategy(fail_initialize=RuntimeError("bad base url")))
        with pytest.raises(InitializationFailedError):
            service.generate_content(GenerationRequest(provider_id="mock", prompt="hi"))

    def test_cancelled_before_dispatch(self, service, mock_strategy) -> None:
        token = CancellationToken()
        token.cancel("user aborted")
        with pytest.raises(CancelledError):
            service.generate_content(GenerationRequest(provider_id="mock", prompt="hi"), token)
        assert mock_strategy.generate_calls == 0  # nosec B101 - pytest assertion in tests

    def test_cancelled_while_in_flight_discards_result(self) -> None:
        strategy = _SlowMock()
        service = _service_with(strategy)
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel, args=("user aborted",))
        timer.start()
        with pytest.raises(CancelledError, match="user aborted"):
            service.generate_content(GenerationRequest(provider_id="mock", prompt="hi"), token)
        timer.join()
        assert strategy.generate_calls == 1  # nosec B101 - pytest assertion in tests


class TestGenerateJson:
    def test_missing_schema_never_reaches_provider(self, service, registry, mock_strategy) -> None:
        with pytest.raises(InvalidRequestError, match="json_schema"):
            service.generate_json(GenerationRequest(provider_id="mock", prompt="hi"))
        assert mock_strategy.generate_calls == 0  # nosec B101 - pytest assertion in tests
        assert not registry.is_initialized("mock")  # nosec B101 - pytest assertion in tests

    def test_missing_schema_checked_before_provider_lookup(self, service) -> None:
        with pytest.raises(InvalidRequestError, match="json_schema"):
            service.generate_json({"provider_id": "nobody", "prompt": "hi"})

    def test_schema_example_value(self, service) -> None:
        value = service.generate_json(GenerationRequest(provider_id="mock", prompt="hi", json_schema=_SCHEMA))
        assert value == {"answer": "", "score": 0}  # nosec B101 - pytest assertion in tests

    def test_result_type_validation(self) -> None:
        from pydantic import BaseModel

        class Answer(BaseModel):
            answer: str
            score: int

        service = _service_with(MockStrategy(json_payload={"answer": "42", "score": "7"}))
        req = GenerationRequest(provider_id="mock", prompt="hi", json_schema=_SCHEMA)
        result = service.generate_json(req, result_type=Answer)
        assert result == Answer(answer="42", score=7)  # nosec B101 - pytest assertion in tests

        bad = _service_with(MockStrategy(json_payload={"answer": "42"}))
        with pytest.raises(BackendResponseError):
            bad.generate_json(req, result_type=Answer)

    def test_unparseable_backend_text(self) -> None:
        service = _service_with(MockStrategy(json_text="Sure! Here is your JSON: {"))
        with pytest.raises(BackendResponseError):
            service.generate_json(GenerationRequest(provider_id="mock", prompt="hi", json_schema=_SCHEMA))

    def test_fenced_backend_text(self) -> None:
        service = _service_with(MockStrategy(json_text='```json\n{"answer": "a", "score": 1}\n```'))
        value = service.generate_json(GenerationRequest(provider_id="mock", prompt="hi", json_schema=_SCHEMA))
        assert value == {"answer": "a", "score": 1}  # nosec B101 - pytest assertion in tests


class TestRequestStates:
    def test_successful_request_walks_all_states(self, service, log_events) -> None:
        service.generate_content(GenerationRequest(provider_id="mock", prompt="hi"))
        states = [e for e in log_events() if e["event"] == "orchestration.state"]
        assert [e["phase"] for e in states] == [  # nosec B101 - pytest assertion in tests
            "received",
            "provider_resolved",
            "dispatched",
            "completed",
        ]
        assert len({e["request_id"] for e in states}) == 1  # nosec B101 - pytest assertion in tests
        assert states[-1]["provider"] == "mock"  # nosec B101 - pytest assertion in tests
        assert states[-1]["tokens"]["completion_tokens"] == 2  # nosec B101 - pytest assertion in tests

    def test_failed_request_logs_error_code(self, service, log_events) -> None:
        with pytest.raises(InvalidRequestError):
            service.generate_content(GenerationRequest(provider_id="cohere", prompt="hi"))
        states = [e for e in log_events() if e["event"] == "orchestration.state"]
        assert states[-1]["phase"] == "failed"  # nosec B101 - pytest assertion in tests
        assert states[-1]["error_code"] == "invalid_request"  # nosec B101 - pytest assertion in tests
        assert states[-1]["_level"] == "WARNING"  # nosec B101 - pytest assertion in tests


def test_list_models(service) -> None:
    assert [m.id for m in service.list_models("mock")] == ["mock-echo"]  # nosec B101
    with pytest.raises(InvalidRequestError):
        service.list_models("openai")


def test_messages_dataclass_request(service) -> None:
    req = GenerationRequest(provider_id="mock", messages=[Message(role="user", content="yo")])
    assert service.generate_content(req).content == "echo: yo"  # nosec B101 - pytest assertion in tests
