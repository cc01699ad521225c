"""Structured logging context carried by provider events."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Common fields for provider log events (provider, model, request id).

    ``to_dict`` merges ``extra`` into the top level and prunes ``None`` values.
    """

    provider: Optional[str] = None
    model: Optional[str] = None
    request_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {}) or {}
        data.update({k: v for k, v in extra.items() if v is not None})
        return {k: v for k, v in data.items() if v is not None}

    def with_model(self, model: Optional[str]) -> "LogContext":
        return LogContext(self.provider, model, self.request_id, dict(self.extra))


__all__ = ["LogContext"]
