"""devcore_providers package

Provider orchestration core for LLM backends: a registry of interchangeable
provider strategies (Gemini, OpenAI, Anthropic, mock) with lazy single-flight
initialization, and an orchestration service exposing single-shot, streamed
and schema-constrained JSON generation behind one error taxonomy.

Typical use::

    from devcore_providers import GenerationRequest, build_service

    service = build_service(active="gemini")
    response = service.generate_content(GenerationRequest(provider_id="gemini", prompt="hi"))
"""

from .base.cancellation import CancellationToken, CancelledError
from .base.errors import (
    BackendResponseError,
    ConfigurationError,
    ErrorCode,
    GatewayError,
    InitializationFailedError,
    InvalidRequestError,
    NoActiveProviderError,
    NotConfiguredError,
    NotRegisteredError,
    ProviderError,
    SecretNotFoundError,
)
from .base.interfaces import ProviderStrategy, SecretResolver
from .base.models import (
    FinishReason,
    GenerationRequest,
    GenerationResponse,
    Message,
    ModelInfo,
    ProviderConfig,
    ProviderId,
    StreamChunk,
    TokenUsage,
)
from .base.streaming import StreamController
from .registry import ProviderRegistry
from .secrets import ChainedSecretResolver, EnvSecretResolver, InMemorySecretResolver
from .service import OrchestrationService, PresetCatalog, StructuredPreset, build_registry, build_service

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CancellationToken",
    "CancelledError",
    "ErrorCode",
    "GatewayError",
    "ConfigurationError",
    "NotRegisteredError",
    "NotConfiguredError",
    "SecretNotFoundError",
    "InitializationFailedError",
    "InvalidRequestError",
    "BackendResponseError",
    "NoActiveProviderError",
    "ProviderError",
    "ProviderStrategy",
    "SecretResolver",
    "FinishReason",
    "GenerationRequest",
    "GenerationResponse",
    "Message",
    "ModelInfo",
    "ProviderConfig",
    "ProviderId",
    "StreamChunk",
    "TokenUsage",
    "StreamController",
    "ProviderRegistry",
    "InMemorySecretResolver",
    "EnvSecretResolver",
    "ChainedSecretResolver",
    "OrchestrationService",
    "PresetCatalog",
    "StructuredPreset",
    "build_registry",
    "build_service",
]
