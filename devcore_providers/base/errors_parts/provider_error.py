"""
Structured upstream failure type.

Wraps vendor SDK exceptions raised during a backend call with a normalized
`ErrorCode` so callers can decide whether a retry makes sense.
"""
from __future__ import annotations

from typing import Optional

from .error_code import ErrorCode
from .gateway_errors import GatewayError


class ProviderError(GatewayError):
    """A backend call failed (transport, auth, quota or server side).

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        provider: Provider key where the error originated (e.g. ``"openai"``).
        model: Optional model name associated with the failure.
        raw: Optional original exception for diagnostics.
    """

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        raw: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, provider=provider, cause=raw, code=code)
        self.model = model
        self.raw = raw

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.provider or '-'}:{self.model or '-'} {self.code.value}: {self.message}"


__all__ = ["ProviderError"]
