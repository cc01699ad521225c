"""Provider registry and lifecycle management."""

from .manager import ProviderRegistry
from .single_flight import SingleFlight

__all__ = ["ProviderRegistry", "SingleFlight"]
