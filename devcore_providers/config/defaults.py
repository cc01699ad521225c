"""devcore_providers.config.defaults
================================

Built-in defaults used when no config file is supplied, or when a file omits
a provider. Plain constants only (no I/O) so any layer can import them without
creating cycles.

Prices are USD per million tokens and only feed cost estimates in
``TokenUsage.cost``; they are not billing data.
"""

from __future__ import annotations

from typing import Dict, Tuple

from ..base.models import ModelInfo, ProviderId

# ---- Environment variable names ----
# Path to a JSON or YAML provider config file.
CONFIG_FILE_ENV = "DEVCORE_PROVIDERS_CONFIG"
# Provider id made active by ``build_service`` when none is passed.
ACTIVE_PROVIDER_ENV = "DEVCORE_ACTIVE_PROVIDER"

# ---- Default models ----
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
ANTHROPIC_DEFAULT_MODEL = "claude-sonnet-4-20250514"
MOCK_DEFAULT_MODEL = "mock-echo"

# Anthropic requires max_tokens on every call.
ANTHROPIC_DEFAULT_MAX_TOKENS = 4096

# ---- Secret references handed to the resolver ----
DEFAULT_SECRET_REFS: Dict[ProviderId, str] = {
    ProviderId.GEMINI: "gemini_api_key",
    ProviderId.OPENAI: "openai_api_key",
    ProviderId.ANTHROPIC: "anthropic_api_key",
    ProviderId.MOCK: "mock_api_key",
}

DEFAULT_MODELS: Dict[ProviderId, str] = {
    ProviderId.GEMINI: GEMINI_DEFAULT_MODEL,
    ProviderId.OPENAI: OPENAI_DEFAULT_MODEL,
    ProviderId.ANTHROPIC: ANTHROPIC_DEFAULT_MODEL,
    ProviderId.MOCK: MOCK_DEFAULT_MODEL,
}

# ---- Model catalogs ----
MODEL_CATALOGS: Dict[ProviderId, Tuple[ModelInfo, ...]] = {
    ProviderId.GEMINI: (
        ModelInfo(
            id="gemini-2.5-flash",
            context_window=1_048_576,
            input_cost_per_mtok=0.30,
            output_cost_per_mtok=2.50,
            supports_vision=True,
            display_name="Gemini 2.5 Flash",
        ),
        ModelInfo(
            id="gemini-2.5-pro",
            context_window=1_048_576,
            input_cost_per_mtok=1.25,
            output_cost_per_mtok=10.0,
            supports_vision=True,
            display_name="Gemini 2.5 Pro",
        ),
    ),
    ProviderId.OPENAI: (
        ModelInfo(
            id="gpt-4o-mini",
            context_window=128_000,
            input_cost_per_mtok=0.15,
            output_cost_per_mtok=0.60,
            supports_vision=True,
            display_name="GPT-4o mini",
        ),
        ModelInfo(
            id="gpt-4o",
            context_window=128_000,
            input_cost_per_mtok=2.50,
            output_cost_per_mtok=10.0,
            supports_vision=True,
            display_name="GPT-4o",
        ),
    ),
    ProviderId.ANTHROPIC: (
        ModelInfo(
            id="claude-sonnet-4-20250514",
            context_window=200_000,
            input_cost_per_mtok=3.0,
            output_cost_per_mtok=15.0,
            supports_vision=True,
            display_name="Claude Sonnet 4",
        ),
        ModelInfo(
            id="claude-3-5-haiku-latest",
            context_window=200_000,
            input_cost_per_mtok=0.80,
            output_cost_per_mtok=4.0,
            display_name="Claude 3.5 Haiku",
        ),
    ),
    ProviderId.MOCK: (
        ModelInfo(id="mock-echo", context_window=8_192, display_name="Mock echo"),
    ),
}


__all__ = [
    "CONFIG_FILE_ENV",
    "ACTIVE_PROVIDER_ENV",
    "GEMINI_DEFAULT_MODEL",
    "OPENAI_DEFAULT_MODEL",
    "ANTHROPIC_DEFAULT_MODEL",
    "MOCK_DEFAULT_MODEL",
    "ANTHROPIC_DEFAULT_MAX_TOKENS",
    "DEFAULT_SECRET_REFS",
    "DEFAULT_MODELS",
    "MODEL_CATALOGS",
]
