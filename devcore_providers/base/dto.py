"""
Pydantic DTOs validating untrusted input at the edge of the core.

Purpose
-------
Requests arriving at the orchestration service and provider configs read from
files are validated here before they become the plain dataclasses in
:mod:`devcore_providers.base.models`. Validation either succeeds or raises
``pydantic.ValidationError``; callers translate that into the gateway error
taxonomy (``InvalidRequestError`` for requests, ``ConfigurationError`` for
config files).
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import GenerationRequest, Message, ModelInfo, ProviderConfig, ProviderId


class MessageDTO(BaseModel):
    """A chat turn with a non-empty role and string content."""

    model_config = ConfigDict(extra="forbid")

    role: Literal["system", "user", "assistant"]
    content: str

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message content must not be blank")
        return value


class GenerationRequestDTO(BaseModel):
    """Validated form of :class:`GenerationRequest`.

    Rules:
        - ``provider_id`` must be a non-empty string; whether it names a known
          provider is decided by the registry.
        - Exactly one of ``prompt`` or ``messages`` must carry input.
        - ``temperature`` within [0, 2]; ``max_output_tokens`` positive.
        - ``json_schema``, when present, must be a non-empty mapping.
    """

    model_config = ConfigDict(extra="forbid")

    provider_id: str = Field(min_length=1)
    model: Optional[str] = None
    prompt: Optional[str] = None
    messages: List[MessageDTO] = Field(default_factory=list)
    system_instruction: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_output_tokens: Optional[int] = Field(default=None, gt=0)
    json_schema: Optional[Dict[str, Any]] = None

    @field_validator("provider_id", mode="before")
    @classmethod
    def _provider_token(cls, value: Any) -> Any:
        if isinstance(value, ProviderId):
            return value.value
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def _validate_input(self) -> "GenerationRequestDTO":
        has_prompt = self.prompt is not None and bool(self.prompt.strip())
        if has_prompt and self.messages:
            raise ValueError("provide either 'prompt' or 'messages', not both")
        if not has_prompt and not self.messages:
            raise ValueError("request needs a non-empty 'prompt' or at least one message")
        if self.json_schema is not None and not self.json_schema:
            raise ValueError("'json_schema' must not be empty")
        return self

    @classmethod
    def from_request(cls, request: GenerationRequest) -> "GenerationRequestDTO":
        data = request.to_dict()
        if data["provider_id"] is None:
            data["provider_id"] = ""
        return cls.model_validate(data)

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            provider_id=self.provider_id,
            model=self.model,
            prompt=self.prompt,
            messages=[Message(role=m.role, content=m.content) for m in self.messages],
            system_instruction=self.system_instruction,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            json_schema=self.json_schema,
        )


class ModelInfoDTO(BaseModel):
    """Model catalog entry as written in config files."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    context_window: int = Field(default=0, ge=0)
    input_cost_per_mtok: float = Field(default=0.0, ge=0.0)
    output_cost_per_mtok: float = Field(default=0.0, ge=0.0)
    supports_streaming: bool = True
    supports_json: bool = True
    supports_vision: bool = False
    display_name: Optional[str] = None

    def to_model(self) -> ModelInfo:
        return ModelInfo(**self.model_dump())


class ProviderConfigDTO(BaseModel):
    """Provider config block as written in config files.

    ``default_model`` must appear in ``models`` when a catalog is given.
    """

    model_config = ConfigDict(extra="ignore")

    secret_ref: str = Field(min_length=1)
    default_model: str = Field(min_length=1)
    base_url: Optional[str] = None
    models: List[ModelInfoDTO] = Field(default_factory=list)

    @model_validator(mode="after")
    def _default_in_catalog(self) -> "ProviderConfigDTO":
        if self.models and self.default_model not in {m.id for m in self.models}:
            raise ValueError(f"default_model {self.default_model!r} is not in the models list")
        return self

    def to_config(self, provider_id: ProviderId) -> ProviderConfig:
        return ProviderConfig(
            id=provider_id,
            secret_ref=self.secret_ref,
            default_model=self.default_model,
            base_url=self.base_url,
            models=tuple(m.to_model() for m in self.models),
        )


__all__ = [
    "MessageDTO",
    "GenerationRequestDTO",
    "ModelInfoDTO",
    "ProviderConfigDTO",
]
