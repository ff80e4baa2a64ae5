"""
Parsing and validation of LLM analysis output.

The happy path is extract_first_json -> validate_ai_analysis. When the
model deviates from the contract, coerce_ai_analysis turns whatever came
back into a well-typed AIAnalysis. Coercion first classifies the output
into one of the known response variants; deep text search is the last
resort for unrecognised objects.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any

from food_scan_api.models.food_scan import AIAnalysis

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_SCORE = 60
MAX_DESCRIPTION_LENGTH = 600
DEEP_SEARCH_MAX_DEPTH = 4
MIN_PLAUSIBLE_TEXT_LENGTH = 20

DESCRIPTION_ALIASES = ("description", "summary", "analysis", "message", "text", "content")
SCORE_ALIASES = ("healthScore", "score", "health_score", "rating")
SUGGESTION_ALIASES = ("suggestions", "tips", "advice", "recommendations")

TRUNCATED_MESSAGE = (
    "AI response was truncated by the model (max tokens reached). "
    "Showing nutrition facts below; consider rescanning or trying again."
)
NON_STANDARD_MESSAGE = "AI returned a non-standard response. Showing nutrition facts below."

_FENCE = re.compile(r"```(?:json)?", re.I)


class ModelOutputError(ValueError):
    """Model output could not be parsed or failed schema validation."""


# =============================================================================
# Extraction and validation
# =============================================================================


def strip_fences(text: str) -> str:
    """Remove markdown code fences."""
    return _FENCE.sub("", text).strip()


def extract_first_json(text: Any) -> str | None:
    """
    Return the first balanced {...} span in the text.

    Brace depth is counted naively; braces inside JSON strings are not
    special-cased.
    """
    if not isinstance(text, str):
        text = json.dumps(text if text is not None else "")
    s = strip_fences(text)

    start = s.find("{")
    if start == -1:
        return None

    depth = 0
    for i in range(start, len(s)):
        if s[i] == "{":
            depth += 1
        elif s[i] == "}":
            depth -= 1
            if depth == 0:
                return s[start : i + 1]
    return None


def parse_model_json(raw: Any) -> Any:
    """
    Extract and parse the first JSON object in model output.

    Raises:
        ModelOutputError: If no object is found or it is not valid JSON
    """
    json_str = extract_first_json(raw)
    if json_str is None:
        raise ModelOutputError("No JSON object found in model output")
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ModelOutputError(f"Failed to parse extracted JSON: {e}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def clamp_score(value: float) -> int:
    return max(1, min(100, round(value)))


def validate_ai_analysis(obj: Any) -> AIAnalysis:
    """
    Validate an object against the AIAnalysis contract.

    healthScore is rounded and clamped to [1, 100].

    Raises:
        ModelOutputError: If description, healthScore or suggestions are
            missing or mistyped
    """
    if not isinstance(obj, dict):
        raise ModelOutputError("AI analysis is not an object")

    description = obj.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ModelOutputError("Missing or invalid description")

    score = obj.get("healthScore")
    if not _is_number(score):
        raise ModelOutputError("Missing or invalid healthScore")

    suggestions = obj.get("suggestions")
    if not isinstance(suggestions, list) or not all(isinstance(s, str) for s in suggestions):
        raise ModelOutputError("Missing or invalid suggestions")

    return AIAnalysis(
        description=description,
        health_score=clamp_score(score),
        suggestions=suggestions,
    )


# =============================================================================
# Response variants
# =============================================================================


@dataclass(frozen=True)
class CandidateText:
    """candidates[0].content.parts[*].text shape with usable text."""

    text: str


@dataclass(frozen=True)
class CandidatesWithoutText:
    """candidates present but no text part (blocked or truncated)."""

    finish_reason: str | None


@dataclass(frozen=True)
class PlainText:
    """The model returned a bare string."""

    text: str


@dataclass(frozen=True)
class UnstructuredObject:
    """Any other object or array."""

    data: Any


ResponseVariant = CandidateText | CandidatesWithoutText | PlainText | UnstructuredObject


def classify_response(obj: Any) -> ResponseVariant:
    """Classify raw model output into a known response variant."""
    if isinstance(obj, str):
        return PlainText(obj)

    if isinstance(obj, dict) and isinstance(obj.get("candidates"), list) and obj["candidates"]:
        first = obj["candidates"][0] if isinstance(obj["candidates"][0], dict) else {}
        content = first.get("content") if isinstance(first.get("content"), dict) else {}
        parts = content.get("parts") if isinstance(content.get("parts"), list) else []
        for part in parts:
            if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"]:
                return CandidateText(part["text"])
        return CandidatesWithoutText(first.get("finishReason") or obj.get("finishReason"))

    return UnstructuredObject(obj)


# =============================================================================
# Coercion
# =============================================================================


def _truncate(text: str) -> str:
    if len(text) > MAX_DESCRIPTION_LENGTH:
        return text[:MAX_DESCRIPTION_LENGTH] + "…"
    return text


def is_plausible_text(value: str) -> bool:
    """Natural-language looking: letters, whitespace, >= 20 chars, not JSON."""
    trimmed = value.strip()
    if len(trimmed) < MIN_PLAUSIBLE_TEXT_LENGTH:
        return False
    if trimmed.startswith(("{", "[")):
        return False
    return bool(re.search(r"[A-Za-z]", trimmed)) and bool(re.search(r"\s", trimmed))


def find_plausible_text(node: Any, max_depth: int = DEEP_SEARCH_MAX_DEPTH) -> str | None:
    """
    Depth-first search for the first plausible natural-language string.

    Only used for objects that match no known response variant.
    """

    def search(value: Any, depth: int) -> str | None:
        if depth > max_depth or value is None:
            return None
        if isinstance(value, str):
            return value if is_plausible_text(value) else None
        if isinstance(value, dict):
            children = list(value.values())
        elif isinstance(value, list):
            children = value
        else:
            return None
        for child in children:
            found = search(child, depth + 1)
            if found:
                return found
        return None

    return search(node, 0)


def _first_alias(data: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _coerce_score(data: dict) -> int:
    value = _first_alias(data, SCORE_ALIASES)
    if not _is_number(value):
        return DEFAULT_HEALTH_SCORE
    # 0-1 ratings are scaled to 0-100
    return clamp_score(value * 100 if value <= 1 else value)


def _coerce_suggestions(data: dict) -> list[str]:
    value = _first_alias(data, SUGGESTION_ALIASES)
    if isinstance(value, list):
        suggestions = []
        for item in value:
            if isinstance(item, str):
                suggestions.append(item)
            elif isinstance(item, dict) and isinstance(item.get("text"), str):
                suggestions.append(item["text"])
        return [s for s in suggestions if s]
    if isinstance(value, str):
        parts = re.split(r"\n+|\r+|\.\s+", value)
        return [p.strip() for p in parts if p.strip()][:5]
    return []


def coerce_ai_analysis(obj: Any) -> AIAnalysis:
    """
    Best-effort conversion of non-conforming output into AIAnalysis.

    Order: known provider shapes, then deep text search (depth 4), then
    generic key aliases. Score and suggestions are always read from
    aliases when the output is an object.
    """
    match classify_response(obj):
        case PlainText(text=text):
            description = text.strip() or NON_STANDARD_MESSAGE
            return AIAnalysis(
                description=_truncate(description),
                health_score=DEFAULT_HEALTH_SCORE,
                suggestions=[],
            )
        case CandidateText(text=text):
            return AIAnalysis(
                description=_truncate(text),
                health_score=DEFAULT_HEALTH_SCORE,
                suggestions=[],
            )
        case CandidatesWithoutText(finish_reason=reason):
            message = TRUNCATED_MESSAGE if reason == "MAX_TOKENS" else NON_STANDARD_MESSAGE
            return AIAnalysis(description=message, health_score=DEFAULT_HEALTH_SCORE, suggestions=[])
        case UnstructuredObject(data=data):
            pass

    record = data if isinstance(data, dict) else {}

    description = find_plausible_text(data)
    if description is None:
        alias = next(
            (record[k] for k in DESCRIPTION_ALIASES if isinstance(record.get(k), str) and record[k].strip()),
            None,
        )
        description = alias if alias is not None else json.dumps(data, default=str)

    logger.debug("Coerced non-standard AI analysis output")
    return AIAnalysis(
        description=_truncate(description.strip() or NON_STANDARD_MESSAGE),
        health_score=_coerce_score(record),
        suggestions=_coerce_suggestions(record),
    )
