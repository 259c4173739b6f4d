"""Parse raw analyzer text into a validated payload."""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from .schema import AnalyzerPayload

_FENCE_OPEN = re.compile(r"^```[A-Za-z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


class AnalyzerPayloadError(ValueError):
    """Raised when analyzer output is not valid JSON or does not fit the schema."""


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned, count=1), count=1)
    return cleaned


def parse_analysis_text(text: str) -> AnalyzerPayload:
    try:
        raw = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise AnalyzerPayloadError(f"Analyzer output is not valid JSON: {exc}") from exc
    return parse_analysis(raw)


def parse_analysis(raw: object) -> AnalyzerPayload:
    if not isinstance(raw, dict):
        raise AnalyzerPayloadError("Analyzer output must be a JSON object")
    try:
        return AnalyzerPayload.model_validate(raw)
    except ValidationError as exc:
        raise AnalyzerPayloadError(f"Analyzer output does not match the schema: {exc}") from exc
