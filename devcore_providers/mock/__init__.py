"""Mock provider package exposing a deterministic in-memory strategy."""

from .strategy import MockStrategy, example_from_schema

__all__ = ["MockStrategy", "example_from_schema"]
