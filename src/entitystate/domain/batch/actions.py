"""Action types shared by the planning and execution stages.

The planned actions are the contract between:
- planning (read-only registry lookups and classification decisions)
- execution (sightings, remapped updates, migrations and commits)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from entitystate.domain.model import Classification

if TYPE_CHECKING:
    from entitystate.domain.delta import DeltaOperation


@dataclass(slots=True, kw_only=True)
class ClassificationRecord:
    """One analyzer verdict about a secondary entity.

    ``current`` is the analyzer's belief (``None`` meaning "new"); the
    registry's own classification always wins at execution time.
    ``recommended`` is ``None`` when the analyzer made no decision, in which
    case rule-based scoring decides.
    """

    name: str
    current: Classification | None = None
    recommended: Classification | None = None
    reasoning: str = ""
    scene_relevant: bool = False
    sentiment: str | None = None
    updates: tuple[DeltaOperation, ...] = ()


class ActionKind(StrEnum):
    CREATE = "create"
    PROMOTE = "promote"
    DEMOTE = "demote"
    UPDATE = "update"


@dataclass(slots=True, kw_only=True)
class PlannedCreate:
    entity_id: str
    name: str
    classification: Classification
    notes: str
    sentiment: str
    updates: list[DeltaOperation] = field(default_factory=list["DeltaOperation"])


@dataclass(slots=True, kw_only=True)
class PlannedTransition:
    entity_id: str
    name: str
    current: Classification
    target: Classification
    reason: str

    @property
    def kind(self) -> ActionKind:
        if self.target is Classification.MAJOR:
            return ActionKind.PROMOTE
        return ActionKind.DEMOTE


@dataclass(slots=True, kw_only=True)
class PlannedUpdate:
    entity_id: str
    name: str
    updates: list[DeltaOperation] = field(default_factory=list["DeltaOperation"])


@dataclass(slots=True)
class ClassificationActions:
    """Aggregate plan for one analysis result."""

    creates: list[PlannedCreate] = field(default_factory=list[PlannedCreate])
    promotions: list[PlannedTransition] = field(default_factory=list[PlannedTransition])
    demotions: list[PlannedTransition] = field(default_factory=list[PlannedTransition])
    updates: list[PlannedUpdate] = field(default_factory=list[PlannedUpdate])

    def is_empty(self) -> bool:
        return not (self.creates or self.promotions or self.demotions or self.updates)


@dataclass(frozen=True, slots=True)
class ExecutionError:
    action: ActionKind
    name: str
    message: str


@dataclass(slots=True)
class ExecutionResult:
    """Summary of what execution committed, by entity id."""

    created: list[str] = field(default_factory=list[str])
    promoted: list[str] = field(default_factory=list[str])
    demoted: list[str] = field(default_factory=list[str])
    updated: list[str] = field(default_factory=list[str])
    errors: list[ExecutionError] = field(default_factory=list[ExecutionError])
    dropped_operations: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors
