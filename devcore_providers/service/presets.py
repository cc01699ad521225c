"""Structured-output presets.

A preset is a fixed system instruction plus a fixed JSON schema (plus an
optional prompt template) composed on top of ``generate_json``. The pydantic
``result_type`` validates what the backend returned. Presets never touch the
registry or a strategy; registering a new one is enough to add a use case.
"""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..base.errors import InvalidRequestError
from ..base.models import GenerationRequest


# ---- Result types -----------------------------------------------------------
class _Result(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PrSummary(_Result):
    title: str
    summary: str
    changes: List[str]


class PaletteColor(_Result):
    value: str
    name: str


class Palette(_Result):
    primary: PaletteColor
    secondary: PaletteColor
    accent: PaletteColor
    neutral: PaletteColor


class ThemeColors(_Result):
    background: PaletteColor
    surface: PaletteColor
    text_primary: PaletteColor = Field(alias="textPrimary")
    text_secondary: PaletteColor = Field(alias="textSecondary")
    text_on_primary: PaletteColor = Field(alias="textOnPrimary")
    border: PaletteColor


class ContrastCheck(_Result):
    ratio: float
    score: Literal["AAA", "AA", "Fail"]


class AccessibilityChecks(_Result):
    text_on_background: ContrastCheck = Field(alias="textOnBackground")
    text_on_surface: ContrastCheck = Field(alias="textOnSurface")
    text_on_primary: ContrastCheck = Field(alias="textOnPrimary")


class SemanticColorTheme(_Result):
    mode: Literal["light", "dark"]
    palette: Palette
    theme: ThemeColors
    accessibility: AccessibilityChecks


class SecurityVulnerability(_Result):
    vulnerability: str
    severity: Literal["Critical", "High", "Medium", "Low", "Informational"]
    description: str
    mitigation: str
    exploit_suggestion: Optional[str] = Field(default=None, alias="exploitSuggestion")


class CodeSmell(_Result):
    smell: str
    line: int
    explanation: str


class LineExplanation(_Result):
    lines: str
    explanation: str


class Complexity(_Result):
    time: str
    space: str


class StructuredExplanation(_Result):
    summary: str
    line_by_line: List[LineExplanation] = Field(alias="lineByLine")
    complexity: Complexity
    suggestions: List[str]


class FeatureComponent(_Result):
    name: str
    description: str
    icon: str
    code: str


class GeneratedFile(_Result):
    file_path: str = Field(alias="filePath")
    content: str
    description: str


class CronParts(_Result):
    minute: str
    hour: str
    day_of_month: str = Field(alias="dayOfMonth")
    month: str
    day_of_week: str = Field(alias="dayOfWeek")


# ---- Preset type ------------------------------------------------------------
@dataclass(frozen=True)
class StructuredPreset:
    """System instruction + JSON schema (+ prompt template) for one use case.

    ``prompt_template`` is a ``str.format`` template with an ``{input}``
    placeholder; extra placeholders are filled from ``build_request`` kwargs.
    """

    name: str
    system_instruction: str
    schema: Dict[str, Any]
    result_type: Any = None
    prompt_template: Optional[str] = None

    def render_prompt(self, text: str, **params: Any) -> str:
        if self.prompt_template is None:
            return text
        return self.prompt_template.format(input=text, **params)

    def build_request(self, request: GenerationRequest, **params: Any) -> GenerationRequest:
        """Return a copy of ``request`` with this preset's instruction, schema and prompt."""
        changes: Dict[str, Any] = {
            "system_instruction": self.system_instruction,
            "json_schema": self.schema,
        }
        if request.prompt is not None and not request.messages:
            try:
                changes["prompt"] = self.render_prompt(request.prompt, **params)
            except KeyError as exc:
                raise InvalidRequestError(
                    f"preset {self.name!r} needs the parameter {exc.args[0]!r}", cause=exc
                ) from exc
        return request.with_overrides(**changes)


FEATURE_ICONS = (
    "CommandCenterIcon",
    "CodeExplainerIcon",
    "FeatureBuilderIcon",
    "ThemeDesignerIcon",
    "UnitTestGeneratorIcon",
    "CommitGeneratorIcon",
    "RegexSandboxIcon",
    "CodeFormatterIcon",
    "JsonTreeIcon",
    "CronJobBuilderIcon",
    "ColorPaletteGeneratorIcon",
    "CodeReviewBotIcon",
    "ChartBarIcon",
    "CloudIcon",
    "ShieldCheckIcon",
    "CpuChipIcon",
    "SparklesIcon",
    "BugAntIcon",
    "MagnifyingGlassIcon",
)


def _color(description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "description": description,
        "properties": {
            "value": {"type": "string", "description": "Hex color, e.g. #1A2B3C"},
            "name": {"type": "string"},
        },
        "required": ["value", "name"],
    }


def _contrast() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "ratio": {"type": "number"},
            "score": {"type": "string", "enum": ["AAA", "AA", "Fail"]},
        },
        "required": ["ratio", "score"],
    }


PR_SUMMARY = StructuredPreset(
    name="pr_summary",
    system_instruction=(
        "You are an expert programmer who writes excellent PR summaries based on a code diff. "
        "Respond in the requested JSON format."
    ),
    schema={
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "A concise, conventional-commit style title."},
            "summary": {"type": "string", "description": "A one-paragraph summary of the change."},
            "changes": {"type": "array", "items": {"type": "string"}, "description": "Key changes."},
        },
        "required": ["title", "summary", "changes"],
    },
    result_type=PrSummary,
    prompt_template="Generate a PR summary for the following diff:\n\n{input}",
)

SEMANTIC_THEME = StructuredPreset(
    name="semantic_theme",
    system_instruction=(
        "You are a world-class UI/UX designer specializing in color theory and accessibility. "
        "Generate a complete, semantically named color theme. "
        "You must calculate WCAG 2.1 contrast ratios and provide scores."
    ),
    schema={
        "type": "object",
        "properties": {
            "mode": {"type": "string", "enum": ["light", "dark"]},
            "palette": {
                "type": "object",
                "properties": {k: _color(f"{k} brand color") for k in ("primary", "secondary", "accent", "neutral")},
                "required": ["primary", "secondary", "accent", "neutral"],
            },
            "theme": {
                "type": "object",
                "properties": {
                    k: _color(k)
                    for k in ("background", "surface", "textPrimary", "textSecondary", "textOnPrimary", "border")
                },
                "required": ["background", "surface", "textPrimary", "textSecondary", "textOnPrimary", "border"],
            },
            "accessibility": {
                "type": "object",
                "properties": {
                    k: _contrast() for k in ("textOnBackground", "textOnSurface", "textOnPrimary")
                },
                "required": ["textOnBackground", "textOnSurface", "textOnPrimary"],
            },
        },
        "required": ["mode", "palette", "theme", "accessibility"],
    },
    result_type=SemanticColorTheme,
    prompt_template="Create a {mode} color theme based on: {input}",
)

SECURITY_VULNERABILITIES = StructuredPreset(
    name="security_vulnerabilities",
    system_instruction=(
        "You are an expert security engineer. "
        "Analyze the code for vulnerabilities and provide a structured response."
    ),
    schema={
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "vulnerability": {"type": "string"},
                "severity": {"type": "string", "enum": ["Critical", "High", "Medium", "Low", "Informational"]},
                "description": {"type": "string"},
                "mitigation": {"type": "string"},
                "exploitSuggestion": {"type": "string", "description": "Optional proof-of-concept outline."},
            },
            "required": ["vulnerability", "severity", "description", "mitigation"],
        },
    },
    result_type=List[SecurityVulnerability],
    prompt_template="Analyze this code for security vulnerabilities:\n\n```\n{input}\n```",
)

CODE_SMELLS = StructuredPreset(
    name="code_smells",
    system_instruction=(
        "You are an expert software engineer who identifies code smells "
        "like long methods, large classes, and feature envy."
    ),
    schema={
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "smell": {"type": "string"},
                "line": {"type": "integer"},
                "explanation": {"type": "string"},
            },
            "required": ["smell", "line", "explanation"],
        },
    },
    result_type=List[CodeSmell],
    prompt_template="Analyze this code for code smells:\n\n```\n{input}\n```",
)

CODE_EXPLANATION = StructuredPreset(
    name="code_explanation",
    system_instruction=(
        "You are an expert software engineer who explains code clearly. "
        "Give a summary, a line-by-line breakdown, time and space complexity, and improvement suggestions."
    ),
    schema={
        "type": "object",
        "properties": {
            "summary": {"type": "string"},
            "lineByLine": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"lines": {"type": "string"}, "explanation": {"type": "string"}},
                    "required": ["lines", "explanation"],
                },
            },
            "complexity": {
                "type": "object",
                "properties": {"time": {"type": "string"}, "space": {"type": "string"}},
                "required": ["time", "space"],
            },
            "suggestions": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["summary", "lineByLine", "complexity", "suggestions"],
    },
    result_type=StructuredExplanation,
    prompt_template="Explain this code:\n\n```\n{input}\n```",
)

FEATURE_COMPONENT = StructuredPreset(
    name="feature_component",
    system_instruction=(
        "You are an expert software developer creating a new, self-contained React functional component. "
        "The component must be written in TypeScript, use Tailwind CSS for styling, and be defined as a "
        "single string. It must not contain any import statements. All necessary React logic should be "
        "inline (e.g., 'React.useState'). Respond with only a JSON object matching the provided schema."
    ),
    schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "A short, descriptive name for the feature."},
            "description": {"type": "string", "description": "A one-sentence description of the feature."},
            "icon": {"type": "string", "description": "An icon name from the list in the prompt."},
            "code": {"type": "string", "description": "The complete component source as a single string."},
        },
        "required": ["name", "description", "icon", "code"],
    },
    result_type=FeatureComponent,
    prompt_template=(
        'Based on the user request, generate a new feature component.\n\nUser Request: "{input}"\n\n'
        "Valid Icon Names: {icons}."
    ),
)

FULL_STACK_FEATURE = StructuredPreset(
    name="full_stack_feature",
    system_instruction=(
        "You are an expert full-stack engineer. Generate every file needed for the requested feature: "
        "frontend components and backend handlers. Each file must be complete and "
        "runnable. Respond with only a JSON array matching the provided schema."
    ),
    schema={
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "filePath": {"type": "string", "description": "Path of the file relative to the project root."},
                "content": {"type": "string", "description": "The complete file contents."},
                "description": {"type": "string", "description": "What the file does in one sentence."},
            },
            "required": ["filePath", "content", "description"],
        },
    },
    result_type=List[GeneratedFile],
    prompt_template=(
        'Generate the files for this feature.\n\nFeature: "{input}"\n\n'
        "Frontend framework: {framework}\nStyling: {styling}"
    ),
)

CRON_EXPRESSION = StructuredPreset(
    name="cron_expression",
    system_instruction=(
        "You convert natural-language schedules into the five fields of a standard cron expression. "
        "Use '*' for unrestricted fields."
    ),
    schema={
        "type": "object",
        "properties": {
            "minute": {"type": "string"},
            "hour": {"type": "string"},
            "dayOfMonth": {"type": "string"},
            "month": {"type": "string"},
            "dayOfWeek": {"type": "string"},
        },
        "required": ["minute", "hour", "dayOfMonth", "month", "dayOfWeek"],
    },
    result_type=CronParts,
    prompt_template="Create a cron expression for this schedule: {input}",
)

BUILTIN_PRESETS = (
    PR_SUMMARY,
    SEMANTIC_THEME,
    SECURITY_VULNERABILITIES,
    CODE_SMELLS,
    CODE_EXPLANATION,
    FEATURE_COMPONENT,
    FULL_STACK_FEATURE,
    CRON_EXPRESSION,
)


class PresetCatalog:
    """Name → preset lookup; starts with the built-ins unless told otherwise."""

    def __init__(self, presets: Optional[Iterable[StructuredPreset]] = None) -> None:
        self._lock = Lock()
        self._presets: Dict[str, StructuredPreset] = {
            p.name: p for p in (BUILTIN_PRESETS if presets is None else presets)
        }

    def register(self, preset: StructuredPreset) -> None:
        with self._lock:
            self._presets[preset.name] = preset

    def get(self, name: str) -> StructuredPreset:
        with self._lock:
            preset = self._presets.get(name)
        if preset is None:
            raise InvalidRequestError(f"unknown structured-output preset {name!r}")
        return preset

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._presets)


def cron_string(parts: CronParts) -> str:
    """Join cron fields into a single expression."""
    return " ".join((parts.minute, parts.hour, parts.day_of_month, parts.month, parts.day_of_week))


__all__ = [
    "StructuredPreset",
    "PresetCatalog",
    "BUILTIN_PRESETS",
    "PR_SUMMARY",
    "SEMANTIC_THEME",
    "SECURITY_VULNERABILITIES",
    "CODE_SMELLS",
    "CODE_EXPLANATION",
    "FEATURE_COMPONENT",
    "FULL_STACK_FEATURE",
    "CRON_EXPRESSION",
    "PrSummary",
    "SemanticColorTheme",
    "SecurityVulnerability",
    "CodeSmell",
    "StructuredExplanation",
    "FeatureComponent",
    "GeneratedFile",
    "CronParts",
    "cron_string",
]
