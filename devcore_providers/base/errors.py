"""Unified error taxonomy public surface.

This module re-exports the implementations under
``devcore_providers.base.errors_parts`` to keep a stable import path.
"""

from .errors_parts import (
    RETRYABLE_CODES,
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
