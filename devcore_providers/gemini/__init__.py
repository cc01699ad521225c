"""Gemini provider strategy."""

from .strategy import GeminiStrategy

__all__ = ["GeminiStrategy"]
