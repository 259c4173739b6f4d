"""Translate updates written for one record shape onto the other.

An analyzer may describe an entity in terms of the shape it expects (``status.mood``
on a minor, ``notes`` on a major) while the entity's actual classification says
otherwise. Each operation is rewritten to a destination that exists in the
target shape, or dropped when there is none. Operations that already address
the target shape pass through unchanged.

============================  ===========================  ==================================
Source path                   Target minor                 Target major
============================  ===========================  ==================================
``status.mood``               ``data.sentiment`` (Set)     ``trackers.status.mood``
other trackers / status       ``data.notes`` (forced Set)  ``trackers.*``
``narrativeRole.*``           ``data.notes`` (forced Set)  unchanged
``notes``                     ``data.notes``               ``trackers.knowledge`` (forced Add)
``sentiment``                 ``data.sentiment``           ``trackers.relationships.primary.sentiment``
``lastContext``               ``data.lastContext``         ``timeline`` (forced Append)
``timeline``                  dropped                      unchanged
``meta.*`` / unknown          dropped                      dropped
============================  ===========================  ==================================
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, assert_never

from entitystate.domain.delta import MISSING, DeltaOperation, OperationKind
from entitystate.domain.model import PRIMARY_RELATIONSHIP, Classification
from entitystate.domain.paths import Path

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from entitystate.domain.delta import JsonValue

log = logging.getLogger(__name__)

MINOR_FIELDS: Final[frozenset[str]] = frozenset({"notes", "sentiment", "lastContext"})
TRACKER_SECTIONS: Final[frozenset[str]] = frozenset(
    {"status", "appearance", "inventory", "personality", "relationships", "knowledge"}
)

_DATA: Final = "data"
_TRACKERS: Final = "trackers"
_TIMELINE: Final = "timeline"
_NARRATIVE_ROLE: Final = "narrativeRole"


@dataclass(frozen=True, slots=True)
class RemapResult:
    operations: list[DeltaOperation] = field(default_factory=list[DeltaOperation])
    dropped: list[DeltaOperation] = field(default_factory=list[DeltaOperation])

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


def remap_operations(
    operations: Iterable[DeltaOperation],
    target: Classification,
    *,
    now: datetime,
) -> RemapResult:
    """Rewrite ``operations`` so each one addresses the ``target`` shape."""

    result = RemapResult()
    for operation in operations:
        match target:
            case Classification.MINOR:
                remapped = _to_minor(operation)
            case Classification.MAJOR:
                remapped = _to_major(operation, now=now)
            case _ as unreachable:
                assert_never(unreachable)
        if remapped is None:
            log.warning(
                "Dropped %s %s: no destination in a %s record",
                operation.kind,
                operation.path,
                target,
            )
            result.dropped.append(operation)
        else:
            result.operations.append(remapped)
    return result


def _to_minor(operation: DeltaOperation) -> DeltaOperation | None:
    path = operation.path
    head = path.head

    if head == _DATA:
        return operation
    if head in MINOR_FIELDS:
        return _moved(operation, Path((_DATA, *path.segments)))
    if path.startswith(_TRACKERS, "status", "mood") or path.startswith("status", "mood"):
        return _forced(operation, OperationKind.SET, (_DATA, "sentiment"), _as_text)
    if head == _TRACKERS or head in TRACKER_SECTIONS or head == _NARRATIVE_ROLE:
        return _forced(operation, OperationKind.SET, (_DATA, "notes"), _as_text)
    return None


def _to_major(operation: DeltaOperation, *, now: datetime) -> DeltaOperation | None:
    path = operation.path
    head = path.head

    if head in (_TRACKERS, _TIMELINE, _NARRATIVE_ROLE):
        return operation
    if head in TRACKER_SECTIONS:
        return _moved(operation, Path((_TRACKERS, *path.segments)))

    field_name = _minor_field(path)
    if field_name == "notes":
        return _forced(operation, OperationKind.ADD, (_TRACKERS, "knowledge"))
    if field_name == "sentiment":
        return _moved(
            operation, Path((_TRACKERS, "relationships", PRIMARY_RELATIONSHIP, "sentiment"))
        )
    if field_name == "lastContext":
        timestamp = now.isoformat()
        return _forced(
            operation,
            OperationKind.APPEND,
            (_TIMELINE,),
            lambda value: {"event": value, "timestamp": timestamp},
        )
    return None


def _minor_field(path: Path) -> str | None:
    """``notes`` for both ``notes`` and ``data.notes``; ``None`` for anything else."""

    segments = path.segments
    if len(segments) == 1 and segments[0] in MINOR_FIELDS:
        return str(segments[0])
    if len(segments) == 2 and segments[0] == _DATA and segments[1] in MINOR_FIELDS:
        return str(segments[1])
    return None


def _moved(operation: DeltaOperation, path: Path) -> DeltaOperation:
    return DeltaOperation(kind=operation.kind, path=path, value=operation.value)


def _forced(
    operation: DeltaOperation,
    kind: OperationKind,
    segments: tuple[str, ...],
    convert: Callable[[JsonValue], JsonValue] | None = None,
) -> DeltaOperation | None:
    value = operation.value
    if value is MISSING:
        return None
    return DeltaOperation(
        kind=kind,
        path=Path(segments),
        value=convert(value) if convert is not None else value,
    )


def _as_text(value: JsonValue) -> JsonValue:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ", ".join(str(_as_text(item)) for item in value)
    return json.dumps(value)


__all__ = ["MINOR_FIELDS", "TRACKER_SECTIONS", "RemapResult", "remap_operations"]
