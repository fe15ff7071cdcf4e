"""Parsing of free-form model output.

Model answers are not guaranteed to follow the requested format, so every
response is first sorted into one of three variants:

* ``StructuredResponse``: a JSON object was found (whole text or first ``{...}`` span).
* ``FreeTextResponse``: readable text, with any ``Label: value`` lines collected.
* ``MalformedResponse``: empty or unreadable output.

Task-specific parsers below build on that split and never raise.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from docpipe.intelligence.models import AIClassification, CollectiveInsight

_OBJECT_SPAN_RE = re.compile(r"\{.*\}", re.DOTALL)
_FLAT_OBJECT_RE = re.compile(r"\{[^{}]+\}")
_LABELED_LINE_RE = re.compile(r"^\s*[-*]?\s*([^:\n]{1,60}?)\s*:\s*(.+?)\s*$", re.MULTILINE)
_CATEGORY_LINE_RE = re.compile(r"(?:category|classification)\s*:\s*([^\n,]+)", re.IGNORECASE)
_CONFIDENCE_LINE_RE = re.compile(r"(?:confidence|certainty)\s*:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)

DEFAULT_AI_CONFIDENCE = 0.7
LOW_AI_CONFIDENCE = 0.1
_MIN_PRINTABLE_RATIO = 0.8


@dataclass(frozen=True)
class StructuredResponse:
    data: dict[str, object]
    text: str


@dataclass(frozen=True)
class FreeTextResponse:
    text: str
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MalformedResponse:
    text: str
    reason: str


ParsedResponse = StructuredResponse | FreeTextResponse | MalformedResponse


def parse_response(raw: str | None) -> ParsedResponse:
    """Classify raw model output into a structured, free-text or malformed variant."""
    text = strip_code_fences(raw or "")
    if not text:
        return MalformedResponse(text="", reason="empty response")

    data = _load_object(text)
    if data is None:
        span = _OBJECT_SPAN_RE.search(text)
        if span is not None:
            data = _load_object(span.group(0))
        if data is None:
            flat = _FLAT_OBJECT_RE.search(text)
            if flat is not None:
                data = _load_object(flat.group(0))
    if data is not None:
        return StructuredResponse(data=data, text=text)

    if _printable_ratio(text) < _MIN_PRINTABLE_RATIO:
        return MalformedResponse(text=text, reason="response is not readable text")

    fields = {
        _normalize_label(match.group(1)): match.group(2)
        for match in _LABELED_LINE_RE.finditer(text)
        if _normalize_label(match.group(1))
    }
    return FreeTextResponse(text=text, fields=fields)


def strip_code_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()
    return cleaned


def parse_text(raw: str | None) -> str | None:
    """Return cleaned plain text, or None for malformed output."""
    parsed = parse_response(raw)
    if isinstance(parsed, MalformedResponse):
        return None
    return parsed.text


def parse_suggested_name(raw: str | None) -> str | None:
    parsed = parse_response(raw)
    if isinstance(parsed, MalformedResponse):
        return None
    if isinstance(parsed, StructuredResponse):
        for key in ("suggestedName", "suggested_name", "name", "filename"):
            value = parsed.data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    first_line = next((line for line in parsed.text.splitlines() if line.strip()), "")
    if ":" in first_line and isinstance(parsed, FreeTextResponse) and parsed.fields:
        first_line = first_line.split(":", 1)[1]
    name = first_line.strip().strip("\"'`*").strip()
    return name or None


def parse_structured_data(raw: str | None) -> dict[str, object]:
    """Extract a field mapping: JSON object first, then labelled lines, then raw text."""
    parsed = parse_response(raw)
    if isinstance(parsed, StructuredResponse):
        return parsed.data
    if isinstance(parsed, FreeTextResponse):
        if parsed.fields:
            return dict(parsed.fields)
        return {"raw": parsed.text}
    return {}


def parse_ai_classification(
    raw: str | None,
    category_mapper: Callable[[str | None], str],
) -> AIClassification:
    """Turn a classification answer into a category and a confidence in [0, 1].

    Unreadable or unlabelled answers degrade to ``other`` with a low confidence.
    """
    parsed = parse_response(raw)
    raw_text = raw or ""
    if isinstance(parsed, MalformedResponse):
        return AIClassification(
            category="other",
            confidence=LOW_AI_CONFIDENCE,
            reason=f"Unparseable AI response: {parsed.reason}",
            raw_response=raw_text,
            error=parsed.reason,
        )

    if isinstance(parsed, StructuredResponse):
        label = parsed.data.get("category") or parsed.data.get("classification")
        reason = parsed.data.get("reason") or parsed.data.get("explanation") or "AI classification"
        category = category_mapper(str(label) if label is not None else None)
        confidence = _normalize_confidence(parsed.data.get("confidence"))
        return AIClassification(
            category=category,
            confidence=DEFAULT_AI_CONFIDENCE if confidence is None else confidence,
            reason=str(reason),
            raw_response=raw_text,
        )

    category_match = _CATEGORY_LINE_RE.search(parsed.text)
    if category_match is not None:
        label = category_match.group(1).strip()
    elif len(parsed.text) <= 40:
        label = parsed.text
    else:
        label = None
    if label is None:
        return AIClassification(
            category="other",
            confidence=LOW_AI_CONFIDENCE,
            reason="AI response did not name a category",
            raw_response=raw_text,
        )
    category = category_mapper(label)
    confidence_match = _CONFIDENCE_LINE_RE.search(parsed.text)
    confidence = _normalize_confidence(confidence_match.group(1)) if confidence_match else None
    return AIClassification(
        category=category,
        confidence=DEFAULT_AI_CONFIDENCE if confidence is None else confidence,
        reason="AI text analysis",
        raw_response=raw_text,
    )


def parse_collective_insight(
    raw: str | None,
    document_count: int,
    generated_at: str,
) -> CollectiveInsight:
    parsed = parse_response(raw)
    if isinstance(parsed, StructuredResponse):
        data = parsed.data
        suggestions = data.get("organizationSuggestions") or data.get("organization_suggestions")
        return CollectiveInsight(
            document_count=document_count,
            overview=str(data.get("overview") or "No overview available"),
            patterns=_string_list(data.get("patterns")),
            recommendations=_string_list(data.get("recommendations")),
            summary=str(data.get("summary") or "No summary available"),
            organization_suggestions=suggestions if isinstance(suggestions, dict) else {},
            generated_at=generated_at,
        )
    if isinstance(parsed, FreeTextResponse):
        return CollectiveInsight(
            document_count=document_count,
            overview=parsed.text[:300],
            summary="Insights parsing failed",
            generated_at=generated_at,
        )
    return CollectiveInsight.unavailable(document_count, parsed.reason, generated_at)


class CategoryMapper:
    """Maps free-form AI category labels onto internal category keys."""

    def __init__(self, aliases: dict[str, str]) -> None:
        self._aliases = {self._normalize(k): v for k, v in aliases.items()}

    def __call__(self, label: str | None) -> str:
        if not label:
            return "other"
        return self._aliases.get(self._normalize(label), "other")

    @staticmethod
    def _normalize(label: str) -> str:
        cleaned = label.strip().strip("\"'`*.()[]").strip().lower()
        cleaned = re.sub(r"[_\-]+", " ", cleaned)
        return re.sub(r"\s+", " ", cleaned)


def _load_object(text: str) -> dict[str, object] | None:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _normalize_confidence(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(str(value).strip().rstrip("%"))
    except ValueError:
        return None
    if number > 1.0:
        number /= 100.0
    return max(0.0, min(1.0, number))


def _normalize_label(label: str) -> str:
    return re.sub(r"\s+", "_", label.strip().strip("*").strip().lower())


def _printable_ratio(text: str) -> float:
    printable = sum(1 for ch in text if ch.isprintable() or ch in "\n\r\t")
    return printable / len(text)


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]
