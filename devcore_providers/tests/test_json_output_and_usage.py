"""JSON parsing of backend text and token usage extraction."""

from __future__ import annotations

from types import SimpleNamespace
from typing import List

import pytest

from devcore_providers.base.errors import BackendResponseError
from devcore_providers.base.json_output import coerce_result, parse_json_text, strip_code_fences
from devcore_providers.base.models import ModelInfo
from devcore_providers.base.usage import (
    build_usage,
    extract_anthropic_usage,
    extract_gemini_usage,
    extract_openai_usage,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"a": 1}', '{"a": 1}'),
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ("```\n[1, 2]\n```", "[1, 2]"),
        ("  \n[]\n ", "[]"),
    ],
)
def test_strip_code_fences(text: str, expected: str) -> None:
    assert strip_code_fences(text) == expected  # nosec B101 - pytest assertion in tests


def test_parse_json_text() -> None:
    assert parse_json_text('```json\n{"ok": true}\n```') == {"ok": True}  # nosec B101
    assert parse_json_text("[1, 2, 3]") == [1, 2, 3]  # nosec B101 - pytest assertion in tests


@pytest.mark.parametrize("text", [None, "", "   ", "not json", '{"a": '])
def test_parse_json_text_failures(text) -> None:
    with pytest.raises(BackendResponseError) as info:
        parse_json_text(text, provider="gemini")
    assert info.value.provider == "gemini"  # nosec B101 - pytest assertion in tests
    assert info.value.raw_text == text  # nosec B101 - pytest assertion in tests


def test_coerce_result() -> None:
    assert coerce_result({"x": 1}, None) == {"x": 1}  # nosec B101 - pytest assertion in tests
    assert coerce_result(["1", "2"], List[int]) == [1, 2]  # nosec B101 - pytest assertion in tests
    with pytest.raises(BackendResponseError):
        coerce_result(["a"], List[int], provider="openai")


def test_build_usage_derives_total_and_cost() -> None:
    info = ModelInfo(id="m", input_cost_per_mtok=2.0, output_cost_per_mtok=10.0)
    usage = build_usage(1_000_000, 500_000, None, info)
    assert usage.total_tokens == 1_500_000  # nosec B101 - pytest assertion in tests
    assert usage.cost == pytest.approx(7.0)  # nosec B101 - pytest assertion in tests
    bad = build_usage("nope", -3, True)
    assert (bad.prompt_tokens, bad.completion_tokens, bad.total_tokens) == (0, 0, 0)  # nosec B101
    assert bad.cost is None  # nosec B101 - pytest assertion in tests


def test_vendor_usage_shapes() -> None:
    openai = SimpleNamespace(usage=SimpleNamespace(prompt_tokens=3, completion_tokens=4, total_tokens=7))
    anthropic = SimpleNamespace(usage=SimpleNamespace(input_tokens=5, output_tokens=6))
    gemini = SimpleNamespace(
        usage_metadata=SimpleNamespace(prompt_token_count=1, candidates_token_count=2, total_token_count=4)
    )
    assert extract_openai_usage(openai).total_tokens == 7  # nosec B101 - pytest assertion in tests
    assert extract_anthropic_usage(anthropic).total_tokens == 11  # nosec B101 - pytest assertion in tests
    assert extract_gemini_usage(gemini).total_tokens == 4  # nosec B101 - pytest assertion in tests
    assert extract_openai_usage(SimpleNamespace()).total_tokens == 0  # nosec B101
