"""Analyzer adapter: schema, parsing and translation of analysis results."""

from __future__ import annotations

from .parse import AnalyzerPayloadError, parse_analysis, parse_analysis_text, strip_code_fences
from .schema import AnalyzerClassification, AnalyzerPayload
from .translator import AnalysisResult, RejectedOperation, translate_analysis

__all__ = [
    "AnalysisResult",
    "AnalyzerClassification",
    "AnalyzerPayload",
    "AnalyzerPayloadError",
    "RejectedOperation",
    "parse_analysis",
    "parse_analysis_text",
    "strip_code_fences",
    "translate_analysis",
]
