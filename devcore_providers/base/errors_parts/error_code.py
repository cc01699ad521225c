"""
Normalized error codes (taxonomy).

Defines the `ErrorCode` enumeration shared by the registry, the orchestration
service and every provider strategy. Values are lowercase snake_case and are
considered a stable public contract for logging and for the ``error_code``
marker carried by terminal stream chunks.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    # Upstream (backend call) failures
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    UNSUPPORTED = "unsupported"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"

    # Gateway (registry / orchestration) failures
    NOT_REGISTERED = "not_registered"
    NOT_CONFIGURED = "not_configured"
    SECRET_NOT_FOUND = "secret_not_found"
    INITIALIZATION_FAILED = "initialization_failed"
    INVALID_REQUEST = "invalid_request"
    BACKEND_RESPONSE = "backend_response"
    NO_ACTIVE_PROVIDER = "no_active_provider"


#: Codes an upstream caller may reasonably retry.
RETRYABLE_CODES = frozenset(
    {
        ErrorCode.TRANSIENT,
        ErrorCode.RATE_LIMIT,
        ErrorCode.TIMEOUT,
        ErrorCode.UNAVAILABLE,
    }
)


__all__ = ["ErrorCode", "RETRYABLE_CODES"]
