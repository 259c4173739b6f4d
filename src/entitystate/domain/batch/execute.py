"""Realize planned actions against the registry.

Responsibilities of this stage:
- count every touched entity as sighted exactly once
- remap updates against each entity's actual classification
- apply updates before any migration, then commit both with one replace
- never raise; every failure ends up in ``ExecutionResult.errors``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from entitystate.domain.classification import remap_operations, transition
from entitystate.domain.errors import EntityStateError, MigrationError
from entitystate.domain.registry import EntityDefaults

from .actions import ActionKind, ExecutionError, ExecutionResult

if TYPE_CHECKING:
    from datetime import datetime

    from entitystate.domain.delta import DeltaOperation, OperationResult
    from entitystate.domain.registry import EntityRegistry

    from .actions import ClassificationActions, PlannedCreate, PlannedTransition

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _EntityWork:
    name: str
    updates: list[DeltaOperation] = field(default_factory=list["DeltaOperation"])
    transition: PlannedTransition | None = None


def execute_actions(
    registry: EntityRegistry,
    actions: ClassificationActions,
    *,
    now: datetime,
) -> ExecutionResult:
    result = ExecutionResult()

    for create in actions.creates:
        try:
            _execute_create(registry, create, result, now=now)
        except (EntityStateError, ValueError, TypeError) as exc:
            _record_error(result, ActionKind.CREATE, create.name, str(exc))

    for entity_id, work in _group_existing(actions).items():
        kind = work.transition.kind if work.transition is not None else ActionKind.UPDATE
        try:
            _execute_existing(registry, entity_id, work, result, now=now)
        except (EntityStateError, ValueError, TypeError) as exc:
            _record_error(result, kind, work.name, str(exc))

    log.info(
        "Batch executed: %d created, %d promoted, %d demoted, %d updated, %d errors",
        len(result.created),
        len(result.promoted),
        len(result.demoted),
        len(result.updated),
        len(result.errors),
    )
    return result


def _execute_create(
    registry: EntityRegistry,
    create: PlannedCreate,
    result: ExecutionResult,
    *,
    now: datetime,
) -> None:
    record = registry.resolve(
        create.name,
        EntityDefaults(
            notes=create.notes,
            sentiment=create.sentiment,
            classification=create.classification,
        ),
    )
    result.created.append(create.entity_id)
    if not create.updates:
        return

    remapped = remap_operations(create.updates, record.meta.classification, now=now)
    result.dropped_operations += remapped.dropped_count
    operation_results = registry.apply_operations(create.entity_id, remapped.operations)
    _collect_failures(result, ActionKind.UPDATE, create.name, operation_results)


def _execute_existing(
    registry: EntityRegistry,
    entity_id: str,
    work: _EntityWork,
    result: ExecutionResult,
    *,
    now: datetime,
) -> None:
    # planned against an existing record; a deletion since then is an error
    record = registry.record_sighting(entity_id)
    classification = record.meta.classification

    remapped = remap_operations(work.updates, classification, now=now)
    result.dropped_operations += remapped.dropped_count
    staged, operation_results = registry.stage_operations(record, remapped.operations)
    _collect_failures(result, ActionKind.UPDATE, work.name, operation_results)
    updated = any(item.success for item in operation_results)

    final = staged
    planned = work.transition
    migrated = False
    if planned is not None and classification is not planned.target:
        try:
            final = transition(staged, planned.target, planned.reason, now=now)
            migrated = True
        except MigrationError as exc:
            _record_error(result, planned.kind, work.name, str(exc))

    if not (updated or migrated):
        return
    registry.replace(entity_id, final)
    if updated:
        result.updated.append(entity_id)
    if migrated and planned is not None:
        match planned.kind:
            case ActionKind.PROMOTE:
                result.promoted.append(entity_id)
            case _:
                result.demoted.append(entity_id)


def _group_existing(actions: ClassificationActions) -> dict[str, _EntityWork]:
    grouped: dict[str, _EntityWork] = {}
    for planned in (*actions.promotions, *actions.demotions):
        work = grouped.setdefault(planned.entity_id, _EntityWork(name=planned.name))
        if work.transition is None:
            work.transition = planned
    for update in actions.updates:
        work = grouped.setdefault(update.entity_id, _EntityWork(name=update.name))
        work.updates.extend(update.updates)
    return grouped


def _collect_failures(
    result: ExecutionResult,
    action: ActionKind,
    name: str,
    operation_results: list[OperationResult],
) -> None:
    for item in operation_results:
        if not item.success:
            _record_error(result, action, name, item.error or "operation failed")


def _record_error(result: ExecutionResult, action: ActionKind, name: str, message: str) -> None:
    log.warning("%s failed for %s: %s", action, name, message)
    result.errors.append(ExecutionError(action=action, name=name, message=message))


__all__ = ["execute_actions"]
