"""
Gateway error taxonomy.

Every failure the core raises is a :class:`GatewayError` subclass carrying a
normalized :class:`ErrorCode`, so callers branch on the exception kind (or on
``exc.code``) instead of parsing message text. Bad-input kinds and
backend-failure kinds are kept apart: callers retry the latter, never the
former.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from .error_code import ErrorCode, RETRYABLE_CODES


class GatewayError(Exception):
    """Base class for all provider-core failures.

    Attributes:
        message: Human-readable error message suitable for logging.
        code: Normalized :class:`ErrorCode` classification.
        provider: Provider id the failure relates to (may be ``None``).
        cause: Underlying exception, when this error wraps one.
    """

    default_code: ErrorCode = ErrorCode.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        cause: Optional[BaseException] = None,
        code: Optional[ErrorCode] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.cause = cause
        self.code = code or self.default_code
        if cause is not None:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        """Hint for upstream retry logic (not authoritative)."""
        return self.code in RETRYABLE_CODES

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.provider is not None:
            data["provider"] = self.provider
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


class ConfigurationError(GatewayError):
    """A provider id cannot be used because registry state is incomplete."""

    default_code = ErrorCode.NOT_CONFIGURED


class NotRegisteredError(ConfigurationError):
    """No strategy is registered under the requested provider id."""

    default_code = ErrorCode.NOT_REGISTERED


class NotConfiguredError(ConfigurationError):
    """A strategy is registered but no configuration was loaded for it."""

    default_code = ErrorCode.NOT_CONFIGURED


class SecretNotFoundError(GatewayError):
    """The secret resolver returned nothing for a provider's ``secret_ref``."""

    default_code = ErrorCode.SECRET_NOT_FOUND

    def __init__(self, message: str, *, secret_ref: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.secret_ref = secret_ref


class InitializationFailedError(GatewayError):
    """Strategy initialization raised; ``cause`` holds the original exception."""

    default_code = ErrorCode.INITIALIZATION_FAILED


class InvalidRequestError(GatewayError):
    """Missing or malformed request fields, or an unusable provider id."""

    default_code = ErrorCode.INVALID_REQUEST


class BackendResponseError(GatewayError):
    """The backend answered, but with an empty or unparseable payload."""

    default_code = ErrorCode.BACKEND_RESPONSE

    def __init__(self, message: str, *, raw_text: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.raw_text = raw_text


class NoActiveProviderError(GatewayError):
    """``get_active`` was called before any provider was activated."""

    default_code = ErrorCode.NO_ACTIVE_PROVIDER


__all__ = [
    "GatewayError",
    "ConfigurationError",
    "NotRegisteredError",
    "NotConfiguredError",
    "SecretNotFoundError",
    "InitializationFailedError",
    "InvalidRequestError",
    "BackendResponseError",
    "NoActiveProviderError",
]
