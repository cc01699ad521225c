"""Secret resolver implementations.

Purpose
-------
The registry only knows the :class:`~devcore_providers.base.interfaces.SecretResolver`
protocol: ``resolve(secret_ref) -> str | None``. This module provides the
bindings the package ships with:

- ``InMemorySecretResolver``: a mapping, for tests and embedding.
- ``EnvSecretResolver``: process environment, with canonical names and
  aliases per secret reference (``gemini_api_key`` accepts ``GEMINI_API_KEY``
  then ``GOOGLE_API_KEY``). Placeholder values are treated as absent.
- ``ChainedSecretResolver``: first resolver with a non-empty answer wins.

Failure Modes
-------------
Resolvers return ``None`` for unknown references; they never raise for a
missing secret. Values are never logged.
"""

from __future__ import annotations

import os
from threading import Lock
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..base.interfaces import SecretResolver

# secret_ref -> ordered env var names (canonical first)
ENV_MAP: Dict[str, Tuple[str, ...]] = {
    "gemini_api_key": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai_api_key": ("OPENAI_API_KEY",),
    "anthropic_api_key": ("ANTHROPIC_API_KEY",),
    "mock_api_key": ("MOCK_API_KEY",),
}


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if ``val`` looks like a placeholder rather than a credential.

    Heuristics: contains 'placeholder', 'changeme' or 'your-api-key'
    (case-insensitive, surrounding spaces ignored).
    """
    if val is None:
        return False
    v = str(val).strip().lower()
    return "placeholder" in v or "changeme" in v or "your-api-key" in v


class InMemorySecretResolver:
    """Resolve secrets from a mapping; ``set``/``remove`` simulate rotation."""

    def __init__(self, secrets: Optional[Mapping[str, str]] = None) -> None:
        self._secrets: Dict[str, str] = dict(secrets or {})
        self._lock = Lock()

    def resolve(self, secret_ref: str) -> Optional[str]:
        with self._lock:
            return self._secrets.get(secret_ref)

    def set(self, secret_ref: str, value: str) -> None:
        with self._lock:
            self._secrets[secret_ref] = value

    def remove(self, secret_ref: str) -> None:
        with self._lock:
            self._secrets.pop(secret_ref, None)


class EnvSecretResolver:
    """Resolve secrets from environment variables.

    A reference not listed in ``env_map`` is looked up as its upper-cased
    name, so ``my_vault_key`` reads ``MY_VAULT_KEY``.
    """

    def __init__(
        self,
        env_map: Optional[Mapping[str, Iterable[str]]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._env_map = {k: tuple(v) for k, v in (env_map or ENV_MAP).items()}
        self._environ = environ

    def candidates(self, secret_ref: str) -> Tuple[str, ...]:
        return self._env_map.get(secret_ref, (secret_ref.upper(),))

    def resolve(self, secret_ref: str) -> Optional[str]:
        environ = os.environ if self._environ is None else self._environ
        for name in self.candidates(secret_ref):
            val = environ.get(name)
            if val and val.strip() and not is_placeholder(val):
                return val.strip()
        return None


class ChainedSecretResolver:
    """Try each resolver in order; return the first non-empty credential."""

    def __init__(self, *resolvers: SecretResolver) -> None:
        if not resolvers:
            raise ValueError("ChainedSecretResolver needs at least one resolver")
        self._resolvers = resolvers

    def resolve(self, secret_ref: str) -> Optional[str]:
        for resolver in self._resolvers:
            if value := resolver.resolve(secret_ref):
                return value
        return None


__all__ = [
    "ENV_MAP",
    "is_placeholder",
    "InMemorySecretResolver",
    "EnvSecretResolver",
    "ChainedSecretResolver",
]
