"""Delta operation engine: typed, path-addressed partial mutations."""

from __future__ import annotations

from .engine import DeltaEngine, delete_value, get_value, parse_number, set_value
from .operations import (
    MISSING,
    DeltaOperation,
    Document,
    HistoryEntry,
    JsonValue,
    Missing,
    OperationKind,
    OperationPreview,
    OperationResult,
)

__all__ = [
    "MISSING",
    "DeltaEngine",
    "DeltaOperation",
    "Document",
    "HistoryEntry",
    "JsonValue",
    "Missing",
    "OperationKind",
    "OperationPreview",
    "OperationResult",
    "delete_value",
    "get_value",
    "parse_number",
    "set_value",
]
