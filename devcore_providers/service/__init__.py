"""Service layer: orchestration façade, structured-output presets and wiring."""

from .bootstrap import STRATEGY_TABLE, build_registry, build_service
from .orchestration import OrchestrationService, RequestState
from .presets import BUILTIN_PRESETS, PresetCatalog, StructuredPreset

__all__ = [
    "STRATEGY_TABLE",
    "build_registry",
    "build_service",
    "OrchestrationService",
    "RequestState",
    "BUILTIN_PRESETS",
    "PresetCatalog",
    "StructuredPreset",
]
