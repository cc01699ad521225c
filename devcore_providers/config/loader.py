"""Provider configuration loading.

Merge order (later wins)
------------------------
1. Built-in defaults from :mod:`devcore_providers.config.defaults`
2. Optional config file (JSON or YAML) given as ``path`` or via the
   ``DEVCORE_PROVIDERS_CONFIG`` environment variable
3. Environment overrides ``<PROVIDER>_MODEL`` and ``<PROVIDER>_BASE_URL``
   (e.g. ``OPENAI_BASE_URL``)

File layout::

    providers:
      gemini:
        secret_ref: gemini_api_key
        default_model: gemini-2.5-flash
      openai:
        secret_ref: openai_api_key
        default_model: gpt-4o
        base_url: https://api.openai.com/v1
        models:
          - id: gpt-4o
            context_window: 128000
            input_cost_per_mtok: 2.5
            output_cost_per_mtok: 10

Each provider block is validated with ``ProviderConfigDTO``. Any problem
(missing file, unparseable content, unknown provider, invalid block) raises
``ConfigurationError``; configs are loaded once at startup, so failing loudly
beats running with a half-read file.
"""
from __future__ import annotations

import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from ..base.dto import ProviderConfigDTO
from ..base.errors import ConfigurationError
from ..base.logging import get_logger, log_event
from ..base.models import ModelInfo, ProviderConfig, ProviderId
from .defaults import CONFIG_FILE_ENV, DEFAULT_MODELS, DEFAULT_SECRET_REFS, MODEL_CATALOGS

_logger = get_logger("config")

ENV_FIELD_MAP = {
    "default_model": "MODEL",
    "base_url": "BASE_URL",
}


def default_provider_config(provider_id: ProviderId) -> ProviderConfig:
    return ProviderConfig(
        id=provider_id,
        secret_ref=DEFAULT_SECRET_REFS[provider_id],
        default_model=DEFAULT_MODELS[provider_id],
        models=MODEL_CATALOGS.get(provider_id, ()),
    )


def default_provider_configs() -> List[ProviderConfig]:
    """Return one default config per known provider."""
    return [default_provider_config(pid) for pid in ProviderId]


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Parse ``path`` as JSON, falling back to YAML."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read provider config file {str(path)!r}: {exc}", cause=exc) from exc
    try:
        data = json.loads(text)
    except ValueError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"provider config file {str(path)!r} is neither JSON nor YAML", cause=exc
            ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"provider config file {str(path)!r} must contain a mapping")
    return data


def _env_overrides(provider_id: ProviderId, environ: Mapping[str, str]) -> Dict[str, str]:
    prefix = provider_id.value.upper()
    out: Dict[str, str] = {}
    for field, suffix in ENV_FIELD_MAP.items():
        val = environ.get(f"{prefix}_{suffix}")
        if val is not None and val.strip():
            out[field] = val.strip()
    return out


def _apply_env(config: ProviderConfig, environ: Mapping[str, str]) -> ProviderConfig:
    overrides = _env_overrides(config.id, environ)
    if not overrides:
        return config
    models = config.models
    model = overrides.get("default_model")
    if model and config.find_model(model) is None:
        models = models + (ModelInfo(id=model),)
    return replace(config, models=models, **overrides)


def parse_provider_configs(data: Mapping[str, Any]) -> Dict[ProviderId, ProviderConfig]:
    """Validate a ``providers`` mapping into configs.

    A block is layered over that provider's defaults, so a file may set only
    the fields it changes.
    """
    block = data.get("providers", data)
    if not isinstance(block, Mapping):
        raise ConfigurationError("'providers' must be a mapping of provider id to config")
    configs: Dict[ProviderId, ProviderConfig] = {}
    for key, raw in block.items():
        try:
            provider_id = ProviderId.parse(key)
        except ValueError as exc:
            raise ConfigurationError(f"unknown provider {key!r} in config", cause=exc) from exc
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"config for {key!r} must be a mapping", provider=provider_id.value)
        merged = default_provider_config(provider_id).to_dict()
        merged.pop("id")
        merged.update(raw)
        try:
            dto = ProviderConfigDTO.model_validate(merged)
        except ValidationError as exc:
            raise ConfigurationError(
                f"invalid config for {provider_id.value!r}: {exc.error_count()} validation error(s)",
                provider=provider_id.value,
                cause=exc,
            ) from exc
        configs[provider_id] = dto.to_config(provider_id)
    return configs


def load_provider_configs(
    path: Union[str, os.PathLike, None] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    include_defaults: bool = True,
) -> List[ProviderConfig]:
    """Return the provider configs to hand to ``ProviderRegistry.load_configs``.

    Parameters
    ----------
    path:
        Config file; defaults to ``$DEVCORE_PROVIDERS_CONFIG`` when unset.
        With neither, only defaults (plus env overrides) are returned.
    environ:
        Environment mapping (``os.environ`` when omitted).
    include_defaults:
        Add default configs for providers the file does not mention.
    """
    env = os.environ if environ is None else environ
    source = path if path is not None else env.get(CONFIG_FILE_ENV)
    configs: Dict[ProviderId, ProviderConfig] = {}
    if include_defaults:
        configs.update({c.id: c for c in default_provider_configs()})
    if source:
        configs.update(parse_provider_configs(_read_config_file(Path(source))))
    result = [_apply_env(c, env) for c in configs.values()]
    log_event(
        _logger,
        "config.load",
        source=str(source) if source else "defaults",
        providers=[c.id.value for c in result],
    )
    return result


__all__ = [
    "ENV_FIELD_MAP",
    "default_provider_config",
    "default_provider_configs",
    "parse_provider_configs",
    "load_provider_configs",
]
