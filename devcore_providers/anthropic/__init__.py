"""Anthropic provider strategy."""

from .strategy import AnthropicStrategy

__all__ = ["AnthropicStrategy"]
