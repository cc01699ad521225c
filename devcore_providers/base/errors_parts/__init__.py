"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `devcore_providers.base.errors` for the stable surface.
"""

from .error_code import ErrorCode, RETRYABLE_CODES
from .gateway_errors import (
    BackendResponseError,
    ConfigurationError,
    GatewayError,
    InitializationFailedError,
    InvalidRequestError,
    NoActiveProviderError,
    NotConfiguredError,
    NotRegisteredError,
    SecretNotFoundError,
)
from .provider_error import ProviderError
from .classification import classify_exception

__all__ = [
    "ErrorCode",
    "RETRYABLE_CODES",
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
]
