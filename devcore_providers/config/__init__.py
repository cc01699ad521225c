"""Configuration layer: defaults, file loading and environment overrides.

Public API
----------
* ``load_provider_configs(path=None)`` -> list of ``ProviderConfig``
* ``default_provider_configs()`` -> one default config per provider
"""
from __future__ import annotations

from .defaults import (
    ACTIVE_PROVIDER_ENV,
    CONFIG_FILE_ENV,
    DEFAULT_MODELS,
    DEFAULT_SECRET_REFS,
    MODEL_CATALOGS,
)
from .loader import (
    default_provider_config,
    default_provider_configs,
    load_provider_configs,
    parse_provider_configs,
)

__all__ = [
    "ACTIVE_PROVIDER_ENV",
    "CONFIG_FILE_ENV",
    "DEFAULT_MODELS",
    "DEFAULT_SECRET_REFS",
    "MODEL_CATALOGS",
    "default_provider_config",
    "default_provider_configs",
    "load_provider_configs",
    "parse_provider_configs",
]
