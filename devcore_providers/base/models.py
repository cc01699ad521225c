"""
Provider-agnostic data model.

Plain dataclasses shared by the registry, the orchestration service and the
strategies. Nothing here imports a vendor SDK; strategies map these shapes to
SDK calls and back. Validation of untrusted input lives in
:mod:`devcore_providers.base.dto`.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union


class ProviderId(str, Enum):
    """Closed set of backends the core knows how to build."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    MOCK = "mock"

    @classmethod
    def parse(cls, value: Union["ProviderId", str]) -> "ProviderId":
        """Return the member for ``value`` (case-insensitive).

        Raises:
            ValueError: When ``value`` names no known provider.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().lower()
            for member in cls:
                if member.value == token:
                    return member
        raise ValueError(f"unknown provider id: {value!r}")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


class FinishReason(str, Enum):
    """Normalized reason a backend stopped generating."""

    STOP = "stop"
    MAX_TOKENS = "max_tokens"
    SAFETY = "safety"
    RECITATION = "recitation"
    OTHER = "other"

    @classmethod
    def from_vendor(cls, value: Any) -> Optional["FinishReason"]:
        """Map a vendor finish/stop reason (string or SDK enum) to a member."""
        if value is None:
            return None
        name = getattr(value, "name", None) or str(value)
        token = name.strip().lower()
        if not token:
            return None
        return _VENDOR_FINISH_REASONS.get(token, cls.OTHER)


_VENDOR_FINISH_REASONS: Dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
    "length": FinishReason.MAX_TOKENS,
    "safety": FinishReason.SAFETY,
    "content_filter": FinishReason.SAFETY,
    "refusal": FinishReason.SAFETY,
    "recitation": FinishReason.RECITATION,
}


@dataclass(frozen=True)
class ModelInfo:
    """Capability and cost metadata for one model. Never mutated after load."""

    id: str
    context_window: int = 0
    input_cost_per_mtok: float = 0.0
    output_cost_per_mtok: float = 0.0
    supports_streaming: bool = True
    supports_json: bool = True
    supports_vision: bool = False
    display_name: Optional[str] = None

    def estimate_cost(self, prompt_tokens: Optional[int], completion_tokens: Optional[int]) -> float:
        """Return the USD cost of a call given its token counts."""
        prompt = prompt_tokens or 0
        completion = completion_tokens or 0
        return (prompt * self.input_cost_per_mtok + completion * self.output_cost_per_mtok) / 1_000_000

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class ProviderConfig:
    """Static configuration for one provider, loaded once at startup.

    Attributes:
        id: Provider this config belongs to.
        secret_ref: Opaque key handed to the secret resolver.
        default_model: Model used when a request does not name one.
        base_url: Optional endpoint override for the backend client.
        models: Known model catalog for routing and cost accounting.
    """

    id: ProviderId
    secret_ref: str
    default_model: str
    base_url: Optional[str] = None
    models: Tuple[ModelInfo, ...] = ()

    def find_model(self, model_id: Optional[str]) -> Optional[ModelInfo]:
        if not model_id:
            return None
        return next((m for m in self.models if m.id == model_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "secret_ref": self.secret_ref,
            "default_model": self.default_model,
            "base_url": self.base_url,
            "models": [m.to_dict() for m in self.models],
        }


Role = Literal["system", "user", "assistant"]


@dataclass
class Message:
    """A single chat turn."""

    role: Role
    content: str


@dataclass
class GenerationRequest:
    """Provider-agnostic generation request.

    Either ``prompt`` or ``messages`` carries the input. The presence of
    ``json_schema`` selects structured-output mode.
    """

    provider_id: Union[ProviderId, str, None]
    model: Optional[str] = None
    prompt: Optional[str] = None
    messages: List[Message] = field(default_factory=list)
    system_instruction: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    json_schema: Optional[Dict[str, Any]] = None

    @property
    def is_structured(self) -> bool:
        return self.json_schema is not None

    def resolved_messages(self) -> List[Message]:
        """Return the conversation to send: ``messages`` or the prompt as one user turn."""
        if self.messages:
            return list(self.messages)
        if self.prompt is not None:
            return [Message(role="user", content=self.prompt)]
        return []

    def with_overrides(self, **changes: Any) -> "GenerationRequest":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        pid = self.provider_id.value if isinstance(self.provider_id, ProviderId) else self.provider_id
        return {
            "provider_id": pid,
            "model": self.model,
            "prompt": self.prompt,
            "messages": [dataclasses.asdict(m) for m in self.messages],
            "system_instruction": self.system_instruction,
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
            "json_schema": self.json_schema,
        }


@dataclass
class TokenUsage:
    """Token accounting for one call; ``cost`` is USD when the model is priced."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class GenerationResponse:
    """Normalized single-shot response."""

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: Optional[FinishReason] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "usage": self.usage.to_dict(),
            "finish_reason": self.finish_reason.value if self.finish_reason else None,
        }


@dataclass
class StreamChunk:
    """One element of a streamed response; exactly one per stream has ``is_final``."""

    content: str
    is_final: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return bool(self.metadata.get("is_error"))

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "is_final": self.is_final, "metadata": dict(self.metadata)}


__all__ = [
    "ProviderId",
    "FinishReason",
    "ModelInfo",
    "ProviderConfig",
    "Role",
    "Message",
    "GenerationRequest",
    "TokenUsage",
    "GenerationResponse",
    "StreamChunk",
]
