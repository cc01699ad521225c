"""Token usage extraction helpers.

Converts the usage objects of the supported SDKs into :class:`TokenUsage`:

OpenAI:
    ``response.usage.prompt_tokens`` / ``completion_tokens`` / ``total_tokens``
Anthropic:
    ``response.usage.input_tokens`` / ``output_tokens`` (no total; derived)
Gemini (google-genai):
    ``response.usage_metadata.prompt_token_count`` / ``candidates_token_count``
    / ``total_token_count``

Missing or invalid counts become ``0``; these helpers never raise. When the
``ModelInfo`` of the served model is known, ``cost`` is filled in from its
per-million-token prices.
"""

from __future__ import annotations

from typing import Any, Optional

from .models import ModelInfo, TokenUsage


def _coerce_int(value: Any) -> Optional[int]:
    """Coerce to a non-negative ``int`` or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        iv = int(value)
    except (TypeError, ValueError):
        return None
    return iv if iv >= 0 else None


def build_usage(
    prompt: Any = None,
    completion: Any = None,
    total: Any = None,
    model_info: Optional[ModelInfo] = None,
) -> TokenUsage:
    """Build a :class:`TokenUsage`, deriving ``total`` and ``cost`` when possible."""
    p = _coerce_int(prompt) or 0
    c = _coerce_int(completion) or 0
    t = _coerce_int(total)
    if t is None:
        t = p + c
    cost = model_info.estimate_cost(p, c) if model_info is not None else None
    return TokenUsage(prompt_tokens=p, completion_tokens=c, total_tokens=t, cost=cost)


def extract_openai_usage(raw: Any, model_info: Optional[ModelInfo] = None) -> TokenUsage:
    usage = getattr(raw, "usage", None)
    return build_usage(
        getattr(usage, "prompt_tokens", None),
        getattr(usage, "completion_tokens", None),
        getattr(usage, "total_tokens", None),
        model_info,
    )


def extract_anthropic_usage(raw: Any, model_info: Optional[ModelInfo] = None) -> TokenUsage:
    usage = getattr(raw, "usage", None)
    return build_usage(
        getattr(usage, "input_tokens", None),
        getattr(usage, "output_tokens", None),
        None,
        model_info,
    )


def extract_gemini_usage(raw: Any, model_info: Optional[ModelInfo] = None) -> TokenUsage:
    usage = getattr(raw, "usage_metadata", None)
    return build_usage(
        getattr(usage, "prompt_token_count", None),
        getattr(usage, "candidates_token_count", None),
        getattr(usage, "total_token_count", None),
        model_info,
    )


__all__ = [
    "build_usage",
    "extract_openai_usage",
    "extract_anthropic_usage",
    "extract_gemini_usage",
]
