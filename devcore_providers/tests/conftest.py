"""Pytest configuration for the provider core test suite.

Fixtures build an isolated registry per test: an in-memory secret resolver,
the deterministic ``MockStrategy`` and a mock config whose ``secret_ref`` is
``"k1"``. ``log_events`` captures the structured events emitted under the
shared ``devcore.providers`` logger (which does not propagate to root, so
``caplog`` cannot see them).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterator, List

import pytest

from devcore_providers.base.logging import get_logger
from devcore_providers.base.models import ProviderConfig, ProviderId
from devcore_providers.config.defaults import MODEL_CATALOGS
from devcore_providers.mock import MockStrategy
from devcore_providers.registry import ProviderRegistry
from devcore_providers.secrets import InMemorySecretResolver
from devcore_providers.service import OrchestrationService


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture()
def log_events() -> Iterator[Callable[[], List[Dict[str, Any]]]]:
    """Yield a callable returning the structured events logged so far."""

    logger = get_logger()
    handler = _ListHandler()
    logger.addHandler(handler)

    def _events() -> List[Dict[str, Any]]:
        out = []
        for record in handler.records:
            payload = json.loads(record.getMessage())
            payload["_level"] = record.levelname
            out.append(payload)
        return out

    yield _events
    logger.removeHandler(handler)


@pytest.fixture()
def resolver() -> InMemorySecretResolver:
    return InMemorySecretResolver({"k1": "secret-abc"})


@pytest.fixture()
def mock_config() -> ProviderConfig:
    return ProviderConfig(
        id=ProviderId.MOCK,
        secret_ref="k1",
        default_model="mock-echo",
        models=MODEL_CATALOGS[ProviderId.MOCK],
    )


@pytest.fixture()
def mock_strategy() -> MockStrategy:
    return MockStrategy()


@pytest.fixture()
def registry(resolver, mock_strategy, mock_config) -> ProviderRegistry:
    reg = ProviderRegistry(resolver)
    reg.register(mock_strategy)
    reg.load_configs([mock_config])
    return reg


@pytest.fixture()
def service(registry) -> OrchestrationService:
    return OrchestrationService(registry)
