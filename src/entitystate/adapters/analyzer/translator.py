"""Translate analyzer payloads into domain operations and classification records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from entitystate.domain.batch import ClassificationRecord
from entitystate.domain.delta import DeltaOperation
from entitystate.domain.errors import EntityStateError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pydantic import JsonValue

    from .schema import AnalyzerClassification, AnalyzerPayload

log = logging.getLogger(__name__)

PRIMARY_OWNER = "primary"


@dataclass(frozen=True, slots=True)
class RejectedOperation:
    """An analyzer operation that failed validation; ``owner`` is the entity name."""

    owner: str
    raw: JsonValue
    message: str


@dataclass(slots=True)
class AnalysisResult:
    operations: list[DeltaOperation] = field(default_factory=list[DeltaOperation])
    classifications: list[ClassificationRecord] = field(default_factory=list[ClassificationRecord])
    scene_entities: list[str] = field(default_factory=list[str])
    rejected: list[RejectedOperation] = field(default_factory=list[RejectedOperation])


def translate_analysis(payload: AnalyzerPayload) -> AnalysisResult:
    result = AnalysisResult()
    result.operations = _translate_operations(PRIMARY_OWNER, payload.operations, result.rejected)
    result.classifications = [
        _translate_classification(item, result.rejected) for item in payload.classifications
    ]
    result.scene_entities = [name.strip() for name in payload.scene_entities if name.strip()]
    return result


def _translate_classification(
    item: AnalyzerClassification,
    rejected: list[RejectedOperation],
) -> ClassificationRecord:
    return ClassificationRecord(
        name=item.name,
        current=item.current_classification,
        recommended=item.recommended_classification,
        reasoning=item.reasoning,
        scene_relevant=item.scene_relevant,
        sentiment=item.sentiment,
        updates=tuple(_translate_operations(item.name, item.updates, rejected)),
    )


def _translate_operations(
    owner: str,
    raw_operations: Sequence[JsonValue],
    rejected: list[RejectedOperation],
) -> list[DeltaOperation]:
    operations: list[DeltaOperation] = []
    for raw in raw_operations:
        try:
            if not isinstance(raw, dict):
                raise TypeError(f"Operation must be an object, got {type(raw).__name__}")
            operations.append(DeltaOperation.from_mapping(raw))
        except (EntityStateError, TypeError) as exc:
            log.warning("Rejected analyzer operation for %s: %s", owner, exc)
            rejected.append(RejectedOperation(owner=owner, raw=raw, message=str(exc)))
    return operations
