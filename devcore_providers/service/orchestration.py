"""Orchestration service: the single façade over the provider registry.

Operations
----------
``generate_content`` / ``stream_content`` / ``generate_json`` take a
provider-agnostic ``GenerationRequest`` (or an equivalent mapping), resolve
the strategy named by ``request.provider_id`` and delegate to it. The
structured-output helpers (``summarize_changes``, ``generate_theme`` and the
rest) are presets layered on ``generate_json``.

Error policy
------------
- Malformed requests, a missing provider id, and ids the registry reports as
  not registered or not configured all raise ``InvalidRequestError``; the
  registry error is kept as ``__cause__``.
- Every other error (``SecretNotFoundError``, ``InitializationFailedError``,
  ``ProviderError``, ``BackendResponseError``, ``CancelledError``) bubbles
  unchanged from the non-streaming calls.
- ``stream_content`` never raises: any failure becomes the single terminal
  chunk of the returned :class:`StreamController`.
- ``generate_json`` without ``json_schema`` fails before the registry is
  consulted.

The service performs no retries. Each request moves through
``RECEIVED → PROVIDER_RESOLVED → DISPATCHED → COMPLETED | FAILED`` and every
transition is logged as an ``orchestration.state`` event.
"""
from __future__ import annotations

import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, TypeVar, Union

from pydantic import ValidationError

from ..base.cancellation import CancellationToken, CancelledError
from ..base.dto import GenerationRequestDTO
from ..base.errors import (
    ConfigurationError,
    ErrorCode,
    InvalidRequestError,
    classify_exception,
)
from ..base.interfaces import ProviderStrategy
from ..base.json_output import coerce_result
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import GenerationRequest, GenerationResponse, ModelInfo, ProviderId, StreamChunk
from ..base.streaming import StreamController
from ..registry.manager import ProviderRegistry
from .presets import (
    FEATURE_ICONS,
    CodeSmell,
    CronParts,
    FeatureComponent,
    GeneratedFile,
    PresetCatalog,
    PrSummary,
    SecurityVulnerability,
    SemanticColorTheme,
    StructuredExplanation,
)

T = TypeVar("T")
RequestLike = Union[GenerationRequest, Mapping[str, Any]]
ProviderKey = Union[ProviderId, str]


class RequestState(str, Enum):
    RECEIVED = "received"
    PROVIDER_RESOLVED = "provider_resolved"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"


class _RequestTrace:
    """Tracks and logs the state of one request."""

    def __init__(self, logger: logging.Logger, operation: str) -> None:
        self._logger = logger
        self.operation = operation
        self.request_id = uuid.uuid4().hex[:12]
        self.ctx = LogContext(request_id=self.request_id)
        self.state = RequestState.RECEIVED
        self._t0 = time.perf_counter()
        self._emit()

    def _emit(self, level: int = logging.INFO, **fields: Any) -> None:
        normalized_log_event(
            self._logger,
            "orchestration.state",
            self.ctx,
            phase=self.state.value,
            level=level,
            operation=self.operation,
            **fields,
        )

    def resolved(self, strategy: ProviderStrategy, model: Optional[str]) -> None:
        self.ctx = LogContext(provider=strategy.id.value, model=model, request_id=self.request_id)
        self.state = RequestState.PROVIDER_RESOLVED
        self._emit()

    def dispatched(self) -> None:
        self.state = RequestState.DISPATCHED
        self._emit()

    def completed(self, *, tokens: Any = None, emitted: Optional[bool] = None) -> None:
        self.state = RequestState.COMPLETED
        self._emit(tokens=tokens, emitted=emitted, latency_ms=self._elapsed_ms())

    def failed(self, exc: Optional[BaseException] = None, *, error_code: Optional[str] = None) -> None:
        if self.state is RequestState.FAILED:
            return
        self.state = RequestState.FAILED
        code = error_code or (classify_exception(exc).value if exc is not None else ErrorCode.UNKNOWN.value)
        level = logging.INFO if code == ErrorCode.CANCELLED.value else logging.WARNING
        self._emit(
            level=level,
            error_code=code,
            error=type(exc).__name__ if exc is not None else None,
            latency_ms=self._elapsed_ms(),
        )

    def _elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000.0


class OrchestrationService:
    """Façade callers use for generation; never exposes registry internals.

    Every request names its provider. The registry's active-provider pointer
    (``set_active`` / ``get_active``) is for registry callers only; a request
    without ``provider_id`` fails with ``InvalidRequestError`` even when an
    active provider is set.

    Parameters
    ----------
    registry:
        Registry the service resolves strategies from (passed in, not global).
    presets:
        Structured-output preset catalog; built-ins when omitted.
    """

    def __init__(self, registry: ProviderRegistry, presets: Optional[PresetCatalog] = None) -> None:
        self._registry = registry
        self._presets = presets or PresetCatalog()
        self._logger = get_logger("orchestration")

    # Core operations --------------------------------------------------------
    def generate_content(
        self, request: RequestLike, token: Optional[CancellationToken] = None
    ) -> GenerationResponse:
        """Single-shot generation through the provider named by the request."""
        trace = _RequestTrace(self._logger, "generate_content")
        req, strategy = self._prepare(request, token, trace)
        response = self._dispatch(trace, lambda: strategy.generate(req, token), token)
        trace.completed(tokens=response.usage)
        return response

    def stream_content(self, request: RequestLike, token: Optional[CancellationToken] = None) -> StreamController:
        """Stream generation; failures and cancellation end the stream with one terminal chunk.

        Nothing runs until the first chunk is pulled.
        """
        trace = _RequestTrace(self._logger, "stream_content")

        def open_stream(stream_token: CancellationToken):
            req, strategy = self._prepare(request, stream_token, trace)
            trace.dispatched()
            return strategy.stream_generate(req, stream_token)

        def on_terminal(chunk: StreamChunk, emitted: int) -> None:
            if chunk.is_error:
                trace.failed(error_code=chunk.metadata.get("error_code"))
            else:
                trace.completed(tokens=chunk.metadata.get("usage"), emitted=emitted > 0)

        return StreamController(open_stream, token, on_terminal=on_terminal)

    def generate_json(
        self,
        request: RequestLike,
        token: Optional[CancellationToken] = None,
        result_type: Any = None,
    ) -> Any:
        """Schema-constrained generation returning the parsed value.

        When ``result_type`` is given the value is validated (and converted)
        with pydantic; a mismatch raises ``BackendResponseError``.
        """
        trace = _RequestTrace(self._logger, "generate_json")
        req = self._validate(request, trace)
        if req.json_schema is None:
            exc = InvalidRequestError("generate_json requires 'json_schema' on the request")
            trace.failed(exc)
            raise exc
        strategy = self._resolve(req, token, trace)
        req = req.with_overrides(provider_id=strategy.id)
        schema = req.json_schema
        value = self._dispatch(trace, lambda: strategy.generate_json(req, schema, token), token)
        try:
            result = coerce_result(value, result_type, provider=strategy.id.value)
        except Exception as exc:
            trace.failed(exc)
            raise
        trace.completed()
        return result

    def list_models(self, provider_id: ProviderKey) -> List[ModelInfo]:
        """Configured model catalog of a provider."""
        try:
            return self._registry.list_models(provider_id)
        except ConfigurationError as exc:
            raise self._unusable_provider(provider_id, exc) from exc

    # Structured-output presets ------------------------------------------------
    def available_presets(self) -> List[str]:
        return self._presets.names()

    def run_preset(
        self,
        name: str,
        request: RequestLike,
        token: Optional[CancellationToken] = None,
        **params: Any,
    ) -> Any:
        """Apply preset ``name`` to ``request`` and run it through ``generate_json``."""
        preset = self._presets.get(name)
        req = self._validate(request, None)
        return self.generate_json(preset.build_request(req, **params), token, result_type=preset.result_type)

    def summarize_changes(
        self, provider_id: ProviderKey, diff: str, *, model: Optional[str] = None, token: Optional[CancellationToken] = None
    ) -> PrSummary:
        return self._run_text_preset("pr_summary", provider_id, diff, model, token)

    def generate_theme(
        self,
        provider_id: ProviderKey,
        description: str,
        *,
        mode: str = "dark",
        model: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> SemanticColorTheme:
        return self._run_text_preset("semantic_theme", provider_id, description, model, token, mode=mode)

    def analyze_vulnerabilities(
        self, provider_id: ProviderKey, code: str, *, model: Optional[str] = None, token: Optional[CancellationToken] = None
    ) -> List[SecurityVulnerability]:
        return self._run_text_preset("security_vulnerabilities", provider_id, code, model, token)

    def detect_code_smells(
        self, provider_id: ProviderKey, code: str, *, model: Optional[str] = None, token: Optional[CancellationToken] = None
    ) -> List[CodeSmell]:
        return self._run_text_preset("code_smells", provider_id, code, model, token)

    def explain_code(
        self, provider_id: ProviderKey, code: str, *, model: Optional[str] = None, token: Optional[CancellationToken] = None
    ) -> StructuredExplanation:
        return self._run_text_preset("code_explanation", provider_id, code, model, token)

    def generate_feature_component(
        self,
        provider_id: ProviderKey,
        prompt: str,
        *,
        icons: Optional[List[str]] = None,
        model: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> FeatureComponent:
        icon_list = ", ".join(icons or FEATURE_ICONS)
        return self._run_text_preset("feature_component", provider_id, prompt, model, token, icons=icon_list)

    def generate_full_stack_feature(
        self,
        provider_id: ProviderKey,
        prompt: str,
        *,
        framework: str = "React",
        styling: str = "Tailwind CSS",
        model: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> List[GeneratedFile]:
        """Generate every file of a feature for the given frontend framework and styling."""
        return self._run_text_preset(
            "full_stack_feature", provider_id, prompt, model, token, framework=framework, styling=styling
        )

    def generate_cron(
        self, provider_id: ProviderKey, description: str, *, model: Optional[str] = None, token: Optional[CancellationToken] = None
    ) -> CronParts:
        return self._run_text_preset("cron_expression", provider_id, description, model, token)

    def _run_text_preset(
        self,
        name: str,
        provider_id: ProviderKey,
        text: str,
        model: Optional[str],
        token: Optional[CancellationToken],
        **params: Any,
    ) -> Any:
        if not text or not text.strip():
            raise InvalidRequestError(f"preset {name!r} needs non-empty input text")
        request = GenerationRequest(provider_id=provider_id, model=model, prompt=text)
        return self.run_preset(name, request, token, **params)

    # Internals ----------------------------------------------------------------
    def _prepare(
        self, request: RequestLike, token: Optional[CancellationToken], trace: _RequestTrace
    ) -> tuple[GenerationRequest, ProviderStrategy]:
        req = self._validate(request, trace)
        strategy = self._resolve(req, token, trace)
        return req.with_overrides(provider_id=strategy.id), strategy

    def _validate(self, request: RequestLike, trace: Optional[_RequestTrace]) -> GenerationRequest:
        """Validate and normalize the request; raise ``InvalidRequestError`` on bad input."""
        try:
            if isinstance(request, GenerationRequest):
                if not request.provider_id:
                    raise InvalidRequestError("request has no provider id")
                dto = GenerationRequestDTO.from_request(request)
            elif isinstance(request, Mapping):
                if not request.get("provider_id"):
                    raise InvalidRequestError("request has no provider id")
                dto = GenerationRequestDTO.model_validate(dict(request))
            else:
                raise InvalidRequestError(f"unsupported request type {type(request).__name__}")
        except ValidationError as exc:
            error = InvalidRequestError(f"invalid request: {_first_error(exc)}", cause=exc)
            if trace is not None:
                trace.failed(error)
            raise error from exc
        except InvalidRequestError as exc:
            if trace is not None:
                trace.failed(exc)
            raise
        return dto.to_request()

    def _resolve(
        self, req: GenerationRequest, token: Optional[CancellationToken], trace: _RequestTrace
    ) -> ProviderStrategy:
        provider_id = req.provider_id
        try:
            strategy = self._registry.get(provider_id, token)
        except ConfigurationError as exc:
            error = self._unusable_provider(provider_id, exc)
            trace.failed(error)
            raise error from exc
        except Exception as exc:
            trace.failed(exc)
            raise
        trace.resolved(strategy, req.model or (strategy.config.default_model if strategy.config else None))
        return strategy

    @staticmethod
    def _unusable_provider(provider_id: Any, exc: ConfigurationError) -> InvalidRequestError:
        pid = provider_id.value if isinstance(provider_id, ProviderId) else provider_id
        return InvalidRequestError(
            f"AI provider {pid!r} is not supported or configured", provider=str(pid), cause=exc
        )

    def _dispatch(
        self, trace: _RequestTrace, call: Callable[[], T], token: Optional[CancellationToken]
    ) -> T:
        try:
            if token is not None:
                token.raise_if_cancelled()
            trace.dispatched()
            result = call()
            if token is not None and token.cancelled:
                raise CancelledError(token.reason or "operation cancelled")
        except Exception as exc:
            trace.failed(exc)
            raise
        return result


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "request"
    return f"{loc}: {first.get('msg', 'invalid value')}"


__all__ = ["OrchestrationService", "RequestState"]
