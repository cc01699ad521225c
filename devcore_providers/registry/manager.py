"""Provider registry and lifecycle manager.

Owns the three registry maps (registered strategies, configs, initialized
strategies) plus the active provider pointer, and guarantees that at most one
initialization per provider id is in flight at a time.

Lifecycle of ``get(id)``
------------------------
1. Cached initialized strategy → returned immediately.
2. Otherwise registration is checked before configuration
   (``NotRegisteredError`` wins over ``NotConfiguredError``).
3. The config's ``secret_ref`` is resolved (``SecretNotFoundError`` when the
   resolver has nothing), ``strategy.initialize(config, secret)`` runs, and
   only on success is the strategy cached.
4. Initialization failures surface as ``InitializationFailedError`` with the
   original exception as ``cause``. Nothing is cached, so the next call starts
   from scratch.

Steps 2 to 4 run inside a per-id :class:`SingleFlight`, so concurrent first
calls share one secret fetch and one ``initialize``. The state lock guards the
maps only and is never held across secret resolution or client construction.

A cached strategy lives until ``evict(id)``; configs loaded later and secret
rotation do not reinitialize it.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional, Union

from ..base.cancellation import CancellationToken
from ..base.errors import (
    GatewayError,
    InitializationFailedError,
    NoActiveProviderError,
    NotConfiguredError,
    NotRegisteredError,
    SecretNotFoundError,
)
from ..base.interfaces import ProviderStrategy, SecretResolver
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import ModelInfo, ProviderConfig, ProviderId
from .single_flight import SingleFlight

ProviderKey = Union[ProviderId, str]


class ProviderRegistry:
    """Registry of provider strategies with lazy, single-flight initialization.

    Parameters
    ----------
    secret_resolver:
        Credential lookup used on first use of each provider.
    """

    def __init__(self, secret_resolver: SecretResolver) -> None:
        self._resolver = secret_resolver
        self._lock = threading.Lock()
        self._strategies: Dict[ProviderId, ProviderStrategy] = {}
        self._configs: Dict[ProviderId, ProviderConfig] = {}
        self._initialized: Dict[ProviderId, ProviderStrategy] = {}
        self._active: Optional[ProviderId] = None
        self._inits: SingleFlight[ProviderId, ProviderStrategy] = SingleFlight()
        self._logger = get_logger("registry")

    # Registration ---------------------------------------------------------
    def register(self, strategy: ProviderStrategy) -> None:
        """Register ``strategy`` under its own id, overwriting (with a warning) any previous one."""
        pid = strategy.id
        with self._lock:
            replaced = pid in self._strategies
            self._strategies[pid] = strategy
        normalized_log_event(
            self._logger,
            "registry.register",
            LogContext(provider=pid.value),
            phase="register",
            level=logging.WARNING if replaced else logging.INFO,
            replaced=replaced,
            strategy=type(strategy).__name__,
        )

    def load_configs(self, configs: Iterable[ProviderConfig]) -> None:
        """Bulk insert/overwrite configs; initialized strategies are left as they are."""
        loaded = list(configs)
        with self._lock:
            for config in loaded:
                self._configs[config.id] = config
        normalized_log_event(
            self._logger,
            "registry.configs.load",
            phase="configure",
            providers=[c.id.value for c in loaded],
        )

    # Active provider ------------------------------------------------------
    def set_active(self, provider_id: ProviderKey) -> None:
        """Make ``provider_id`` the active provider without initializing it.

        Raises:
            NotRegisteredError: Unknown or unregistered id.
            NotConfiguredError: Registered but not configured.

        On failure the previously active id is kept.
        """
        pid = self._coerce(provider_id)
        with self._lock:
            self._check_known(pid)
            previous = self._active
            self._active = pid
        normalized_log_event(
            self._logger,
            "registry.active.set",
            LogContext(provider=pid.value),
            phase="activate",
            previous=previous.value if previous else None,
        )

    def get_active(self, token: Optional[CancellationToken] = None) -> ProviderStrategy:
        with self._lock:
            active = self._active
        if active is None:
            raise NoActiveProviderError("no active provider has been set")
        return self.get(active, token)

    @property
    def active_id(self) -> Optional[ProviderId]:
        with self._lock:
            return self._active

    # Resolution -----------------------------------------------------------
    def get(self, provider_id: ProviderKey, token: Optional[CancellationToken] = None) -> ProviderStrategy:
        """Return the initialized strategy for ``provider_id``, initializing it on first use."""
        pid = self._coerce(provider_id)
        with self._lock:
            cached = self._initialized.get(pid)
        if cached is not None:
            return cached
        if token is not None:
            token.raise_if_cancelled()
        return self._inits.do(pid, lambda: self._initialize(pid), token)

    def _initialize(self, pid: ProviderId) -> ProviderStrategy:
        with self._lock:
            cached = self._initialized.get(pid)
            if cached is not None:
                return cached
            self._check_known(pid)
            strategy = self._strategies[pid]
            config = self._configs[pid]

        ctx = LogContext(provider=pid.value, model=config.default_model)
        normalized_log_event(
            self._logger, "registry.init.start", ctx, phase="init", secret_ref=config.secret_ref
        )
        t0 = time.perf_counter()
        try:
            secret = self._resolve_secret(pid, config)
            try:
                strategy.initialize(config, secret)
            except Exception as exc:
                raise InitializationFailedError(
                    f"initialization of provider {pid.value!r} failed: {exc}",
                    provider=pid.value,
                    cause=exc,
                ) from exc
        except GatewayError as exc:
            normalized_log_event(
                self._logger,
                "registry.init.error",
                ctx,
                phase="init",
                level=logging.ERROR,
                error_code=exc.code.value,
                error=exc.message,
                latency_ms=(time.perf_counter() - t0) * 1000.0,
            )
            raise

        with self._lock:
            self._initialized[pid] = strategy
        normalized_log_event(
            self._logger,
            "registry.init.end",
            ctx,
            phase="init",
            emitted=True,
            latency_ms=(time.perf_counter() - t0) * 1000.0,
        )
        return strategy

    def _resolve_secret(self, pid: ProviderId, config: ProviderConfig) -> str:
        try:
            secret = self._resolver.resolve(config.secret_ref)
        except Exception as exc:
            raise InitializationFailedError(
                f"secret resolution for provider {pid.value!r} failed: {exc}",
                provider=pid.value,
                cause=exc,
            ) from exc
        if not secret:
            raise SecretNotFoundError(
                f"no secret found for provider {pid.value!r} (secret_ref={config.secret_ref!r})",
                provider=pid.value,
                secret_ref=config.secret_ref,
            )
        return secret

    # Cache management -----------------------------------------------------
    def evict(self, provider_id: ProviderKey) -> bool:
        """Drop the cached strategy so the next ``get`` initializes again.

        Returns ``True`` if an entry was removed. This is the explicit hook
        for secret rotation; nothing evicts automatically.
        """
        pid = self._coerce(provider_id)
        with self._lock:
            removed = self._initialized.pop(pid, None) is not None
        normalized_log_event(
            self._logger, "registry.evict", LogContext(provider=pid.value), phase="evict", removed=removed
        )
        return removed

    def is_initialized(self, provider_id: ProviderKey) -> bool:
        pid = self._coerce(provider_id)
        with self._lock:
            return pid in self._initialized

    # Introspection --------------------------------------------------------
    def registered_ids(self) -> List[ProviderId]:
        with self._lock:
            return list(self._strategies)

    def configured_ids(self) -> List[ProviderId]:
        with self._lock:
            return list(self._configs)

    def list_models(self, provider_id: ProviderKey) -> List[ModelInfo]:
        """Return the configured model catalog (no initialization needed)."""
        pid = self._coerce(provider_id)
        with self._lock:
            self._check_known(pid)
            return list(self._configs[pid].models)

    def describe(self) -> Dict[str, Any]:
        """Snapshot of registry state for diagnostics (no secrets)."""
        with self._lock:
            return {
                "registered": [p.value for p in self._strategies],
                "configured": [p.value for p in self._configs],
                "initialized": [p.value for p in self._initialized],
                "active": self._active.value if self._active else None,
            }

    # Internals ------------------------------------------------------------
    @staticmethod
    def _coerce(provider_id: ProviderKey) -> ProviderId:
        try:
            return ProviderId.parse(provider_id)
        except ValueError as exc:
            raise NotRegisteredError(
                f"provider {provider_id!r} is not registered", provider=str(provider_id), cause=exc
            ) from exc

    def _check_known(self, pid: ProviderId) -> None:
        """Raise if ``pid`` is not registered, then if not configured. Caller holds the lock."""
        if pid not in self._strategies:
            raise NotRegisteredError(f"provider {pid.value!r} is not registered", provider=pid.value)
        if pid not in self._configs:
            raise NotConfiguredError(f"provider {pid.value!r} is not configured", provider=pid.value)


__all__ = ["ProviderRegistry"]
