"""Parsing of backend text into JSON values for structured-output mode.

Backends are asked for bare JSON but sometimes wrap it in Markdown fences or
return nothing at all. These helpers normalize that and surface every failure
as :class:`BackendResponseError` rather than coercing it.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .errors import BackendResponseError

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(?P<body>.*?)\n?```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return ``text`` trimmed and without a surrounding Markdown code fence."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group("body").strip() if match else stripped


def parse_json_text(text: Optional[str], *, provider: Optional[str] = None) -> Any:
    """Parse backend output into a JSON value.

    Raises:
        BackendResponseError: If ``text`` is empty or is not valid JSON.
    """
    if text is None or not text.strip():
        raise BackendResponseError("backend returned an empty response", provider=provider, raw_text=text)
    body = strip_code_fences(text)
    try:
        return json.loads(body)
    except ValueError as exc:
        raise BackendResponseError(
            f"backend returned invalid JSON: {exc}",
            provider=provider,
            cause=exc,
            raw_text=text,
        ) from exc


def coerce_result(value: Any, result_type: Any, *, provider: Optional[str] = None) -> Any:
    """Validate a parsed value against ``result_type`` via ``pydantic.TypeAdapter``.

    Raises:
        BackendResponseError: When the value does not match the expected shape.
    """
    if result_type is None:
        return value
    try:
        return TypeAdapter(result_type).validate_python(value)
    except ValidationError as exc:
        raise BackendResponseError(
            f"backend JSON does not match {getattr(result_type, '__name__', result_type)!s}: "
            f"{exc.error_count()} validation error(s)",
            provider=provider,
            cause=exc,
        ) from exc


__all__ = ["strip_code_fences", "parse_json_text", "coerce_result"]
