"""Contracts between the core and its collaborators.

``ProviderStrategy`` is the polymorphic provider contract, implemented once
per backend. ``SecretResolver`` is the opaque credential lookup the registry
depends on. Both are kept free of vendor SDK imports.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Protocol, runtime_checkable

from .cancellation import CancellationToken, CancelledError
from .errors import GatewayError, InitializationFailedError, ProviderError, classify_exception
from .logging import LogContext, get_logger
from .models import (
    GenerationRequest,
    GenerationResponse,
    ModelInfo,
    ProviderConfig,
    ProviderId,
    StreamChunk,
)


@runtime_checkable
class SecretResolver(Protocol):
    """Resolve an opaque ``secret_ref`` into a credential.

    Returns ``None`` when the reference is unknown. Production binds this to a
    vault; tests bind it to an in-memory mapping.
    """

    def resolve(self, secret_ref: str) -> Optional[str]:
        ...


class ProviderStrategy(ABC):
    """Uniform capability contract of one generation backend.

    Subclasses set ``provider_id`` and implement ``_create_client`` plus the
    three generation capabilities. ``initialize`` is the template method the
    registry calls exactly once per successful initialization; it keeps the
    warmed client keyed by the credential that built it.

    Once initialized, a strategy is shared by concurrent callers and must
    treat its client as a read-only handle.
    """

    provider_id: ProviderId

    def __init__(self) -> None:
        self._config: Optional[ProviderConfig] = None
        self._client: Any = None
        self._credential: Optional[str] = None
        self._logger = get_logger(f"strategy.{self.provider_id.value}")

    @property
    def id(self) -> ProviderId:
        return self.provider_id

    @property
    def config(self) -> Optional[ProviderConfig]:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def initialize(self, config: ProviderConfig, credential: str) -> None:
        """Build the backend client for ``credential``.

        A repeated call with the same config and credential keeps the current
        client. Any exception propagates; the registry wraps it.
        """
        if config.id is not self.provider_id:
            raise ValueError(
                f"config for {config.id.value!r} passed to {self.provider_id.value!r} strategy"
            )
        if self._client is not None and credential == self._credential and config == self._config:
            return
        client = self._create_client(config, credential)
        self._config = config
        self._credential = credential
        self._client = client

    @abstractmethod
    def _create_client(self, config: ProviderConfig, credential: str) -> Any:
        """Construct the vendor SDK client (no network I/O expected)."""

    @abstractmethod
    def generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> GenerationResponse:
        """Single-shot generation."""

    @abstractmethod
    def stream_generate(
        self, request: GenerationRequest, token: Optional[CancellationToken] = None
    ) -> Iterator[StreamChunk]:
        """Yield chunks in backend order; the last one has ``is_final``."""

    @abstractmethod
    def generate_json(
        self,
        request: GenerationRequest,
        schema: Dict[str, Any],
        token: Optional[CancellationToken] = None,
    ) -> Any:
        """Return the parsed JSON value; raise ``BackendResponseError`` on bad output."""

    def list_models(self) -> List[ModelInfo]:
        return list(self._config.models) if self._config is not None else []

    # Helpers ------------------------------------------------------------
    def _require_client(self) -> Any:
        if self._client is None:
            raise InitializationFailedError(
                f"{self.provider_id.value} strategy used before initialize()",
                provider=self.provider_id.value,
            )
        return self._client

    def _resolve_model(self, request: GenerationRequest) -> str:
        if request.model:
            return request.model
        if self._config is None:
            raise InitializationFailedError(
                f"{self.provider_id.value} strategy has no config", provider=self.provider_id.value
            )
        return self._config.default_model

    def _model_info(self, model: str) -> Optional[ModelInfo]:
        return self._config.find_model(model) if self._config is not None else None

    def _ctx(self, model: Optional[str] = None) -> LogContext:
        return LogContext(provider=self.provider_id.value, model=model)

    def _translate_error(self, exc: BaseException, model: Optional[str] = None) -> BaseException:
        """Map a vendor SDK exception to ``ProviderError``; core errors pass through."""
        if isinstance(exc, (GatewayError, CancelledError)):
            return exc
        return ProviderError(
            classify_exception(exc),
            str(exc) or type(exc).__name__,
            self.provider_id.value,
            model,
            raw=exc,
        )

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return f"{type(self).__name__}(initialized={self.initialized})"


__all__ = ["SecretResolver", "ProviderStrategy"]
