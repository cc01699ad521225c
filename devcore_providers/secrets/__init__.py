"""Secret resolver bindings."""

from .resolvers import (
    ENV_MAP,
    ChainedSecretResolver,
    EnvSecretResolver,
    InMemorySecretResolver,
    is_placeholder,
)

__all__ = [
    "ENV_MAP",
    "ChainedSecretResolver",
    "EnvSecretResolver",
    "InMemorySecretResolver",
    "is_placeholder",
]
