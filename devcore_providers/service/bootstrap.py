"""Composition root.

``STRATEGY_TABLE`` is the explicit registration table: one strategy class per
``ProviderId``. ``build_service`` wires configs, a secret resolver, the
registry and the orchestration service together; nothing is stored in module
globals, so every call returns an independent service.
"""
from __future__ import annotations

import os
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from ..anthropic.strategy import AnthropicStrategy
from ..base.interfaces import ProviderStrategy, SecretResolver
from ..base.models import ProviderConfig, ProviderId
from ..config.defaults import ACTIVE_PROVIDER_ENV
from ..config.loader import load_provider_configs
from ..gemini.strategy import GeminiStrategy
from ..mock.strategy import MockStrategy
from ..openai.strategy import OpenAIStrategy
from ..registry.manager import ProviderRegistry
from ..secrets.resolvers import EnvSecretResolver
from .orchestration import OrchestrationService
from .presets import PresetCatalog

StrategyFactory = Callable[[], ProviderStrategy]

STRATEGY_TABLE: Dict[ProviderId, StrategyFactory] = {
    ProviderId.GEMINI: GeminiStrategy,
    ProviderId.OPENAI: OpenAIStrategy,
    ProviderId.ANTHROPIC: AnthropicStrategy,
    ProviderId.MOCK: MockStrategy,
}


def build_registry(
    resolver: SecretResolver,
    configs: Optional[Iterable[ProviderConfig]] = None,
    *,
    strategies: Optional[Mapping[ProviderId, StrategyFactory]] = None,
) -> ProviderRegistry:
    """Create a registry with every strategy in the table registered and configs loaded.

    ``configs`` defaults to :func:`load_provider_configs` (file + env + defaults).
    """
    registry = ProviderRegistry(resolver)
    for factory in (strategies or STRATEGY_TABLE).values():
        registry.register(factory())
    registry.load_configs(load_provider_configs() if configs is None else configs)
    return registry


def build_service(
    configs: Optional[Iterable[ProviderConfig]] = None,
    resolver: Optional[SecretResolver] = None,
    active: Union[ProviderId, str, None] = None,
    *,
    strategies: Optional[Mapping[ProviderId, StrategyFactory]] = None,
    presets: Optional[PresetCatalog] = None,
) -> OrchestrationService:
    """Build a ready-to-use :class:`OrchestrationService`.

    Parameters
    ----------
    configs:
        Provider configs; loaded from file/env/defaults when omitted.
    resolver:
        Secret resolver; environment variables when omitted.
    active:
        Provider to mark active; falls back to ``$DEVCORE_ACTIVE_PROVIDER``.
    """
    registry = build_registry(resolver or EnvSecretResolver(), configs, strategies=strategies)
    active = active or os.environ.get(ACTIVE_PROVIDER_ENV) or None
    if active:
        registry.set_active(active)
    return OrchestrationService(registry, presets)


__all__ = ["STRATEGY_TABLE", "build_registry", "build_service"]
