"""
Provider Core Base Package

Exports provider-agnostic contracts, data model, error taxonomy, cancellation
and streaming primitives used by the registry, the orchestration service and
the strategies.
"""

from .cancellation import CancellationToken, CancelledError
from .errors import (
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
    classify_exception,
)
from .interfaces import ProviderStrategy, SecretResolver
from .models import (
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
from .streaming import StreamController, accumulate_chunks

__all__ = [
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
    "classify_exception",
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
    "accumulate_chunks",
]
