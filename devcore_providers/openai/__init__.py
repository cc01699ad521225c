"""OpenAI provider strategy."""

from .strategy import OpenAIStrategy

__all__ = ["OpenAIStrategy"]
