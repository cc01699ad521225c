"""Secret resolver bindings."""

from __future__ import annotations

import pytest

from devcore_providers.base.interfaces import SecretResolver
from devcore_providers.secrets import (
    ChainedSecretResolver,
    EnvSecretResolver,
    InMemorySecretResolver,
    is_placeholder,
)


def test_resolvers_satisfy_protocol() -> None:
    for resolver in (InMemorySecretResolver(), EnvSecretResolver(environ={})):
        assert isinstance(resolver, SecretResolver)  # nosec B101 - pytest assertion in tests


def test_in_memory_rotation() -> None:
    resolver = InMemorySecretResolver({"k1": "a"})
    assert resolver.resolve("k1") == "a"  # nosec B101 - pytest assertion in tests
    resolver.set("k1", "b")
    assert resolver.resolve("k1") == "b"  # nosec B101 - pytest assertion in tests
    resolver.remove("k1")
    assert resolver.resolve("k1") is None  # nosec B101 - pytest assertion in tests


def test_env_canonical_then_alias() -> None:
    resolver = EnvSecretResolver(environ={"GOOGLE_API_KEY": "alias-key"})
    assert resolver.resolve("gemini_api_key") == "alias-key"  # nosec B101 - pytest assertion in tests
    resolver = EnvSecretResolver(environ={"GOOGLE_API_KEY": "alias-key", "GEMINI_API_KEY": "main-key"})
    assert resolver.resolve("gemini_api_key") == "main-key"  # nosec B101 - pytest assertion in tests


def test_env_unknown_ref_uses_upper_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MY_VAULT_KEY", "  padded  ")
    assert EnvSecretResolver().resolve("my_vault_key") == "padded"  # nosec B101 - pytest assertion in tests


@pytest.mark.parametrize("value", ["", "   ", "your-api-key-here", "CHANGEME", "placeholder"])
def test_env_ignores_blank_and_placeholder(value: str) -> None:
    resolver = EnvSecretResolver(environ={"OPENAI_API_KEY": value})
    assert resolver.resolve("openai_api_key") is None  # nosec B101 - pytest assertion in tests


def test_is_placeholder() -> None:
    assert is_placeholder("sk-placeholder-123")  # nosec B101 - pytest assertion in tests
    assert not is_placeholder("sk-live-123")  # nosec B101 - pytest assertion in tests
    assert not is_placeholder(None)  # nosec B101 - pytest assertion in tests


def test_chained_first_non_empty_wins() -> None:
    chained = ChainedSecretResolver(
        InMemorySecretResolver({"a": ""}),
        EnvSecretResolver(environ={"A": "from-env"}),
        InMemorySecretResolver({"a": "too-late"}),
    )
    assert chained.resolve("a") == "from-env"  # nosec B101 - pytest assertion in tests
    assert chained.resolve("missing") is None  # nosec B101 - pytest assertion in tests


def test_chained_requires_resolvers() -> None:
    with pytest.raises(ValueError):
        ChainedSecretResolver()
