"""Turn classification records into planned actions.

Planning only reads the registry. Sightings, updates and migrations happen in
:mod:`entitystate.domain.batch.execute`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

from entitystate.domain.classification import (
    ScoringPolicy,
    evaluate_demotion,
    evaluate_promotion,
)
from entitystate.domain.errors import UnresolvableEntityError
from entitystate.domain.model import Classification, MajorRecord, MinorRecord, derive_entity_id

from .actions import (
    ClassificationActions,
    PlannedCreate,
    PlannedTransition,
    PlannedUpdate,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from entitystate.domain.model import EntityRecord
    from entitystate.domain.registry import EntityRegistry

    from .actions import ClassificationRecord

log = logging.getLogger(__name__)

UNKNOWN_SENTIMENT = "Unknown"


def plan_actions(
    registry: EntityRegistry,
    records: Iterable[ClassificationRecord],
    *,
    policy: ScoringPolicy | None = None,
    now: datetime,
) -> ClassificationActions:
    """Decide what to create, migrate and update for each record.

    A name that appears more than once contributes all of its updates; the
    first classification decision for it wins.
    """

    policy = policy or ScoringPolicy()
    actions = ClassificationActions()
    creates: dict[str, PlannedCreate] = {}
    updates: dict[str, PlannedUpdate] = {}
    decided: set[str] = set()

    for record in records:
        name = record.name.strip()
        try:
            entity_id = derive_entity_id(name)
        except UnresolvableEntityError:
            log.warning("Skipping classification record without a usable name: %r", record.name)
            continue

        planned_create = creates.get(entity_id)
        if planned_create is not None:
            planned_create.updates.extend(record.updates)
            continue

        existing = registry.get(entity_id)
        if existing is None:
            planned_create = PlannedCreate(
                entity_id=entity_id,
                name=name,
                classification=record.recommended or Classification.MINOR,
                notes=record.reasoning,
                sentiment=record.sentiment or UNKNOWN_SENTIMENT,
                updates=list(record.updates),
            )
            creates[entity_id] = planned_create
            actions.creates.append(planned_create)
            continue

        if record.updates:
            planned_update = updates.get(entity_id)
            if planned_update is None:
                planned_update = PlannedUpdate(entity_id=entity_id, name=existing.meta.name)
                updates[entity_id] = planned_update
                actions.updates.append(planned_update)
            planned_update.updates.extend(record.updates)

        if entity_id in decided:
            continue
        decided.add(entity_id)

        target, reason = _decide(existing, record, policy, now=now)
        if target is None:
            continue
        intent = registry.request_classification(entity_id, target, reason=reason)
        if intent is None:
            continue
        transition = PlannedTransition(
            entity_id=entity_id,
            name=existing.meta.name,
            current=intent.current,
            target=intent.target,
            reason=intent.reason,
        )
        match intent.target:
            case Classification.MAJOR:
                actions.promotions.append(transition)
            case Classification.MINOR:
                actions.demotions.append(transition)

    return actions


def _decide(
    existing: EntityRecord,
    record: ClassificationRecord,
    policy: ScoringPolicy,
    *,
    now: datetime,
) -> tuple[Classification | None, str]:
    if record.recommended is not None:
        reason = record.reasoning or f"Recommended {record.recommended}"
        return record.recommended, reason

    match existing:
        case MinorRecord():
            evaluation = evaluate_promotion(existing, policy, now=now)
            target = Classification.MAJOR
        case MajorRecord():
            evaluation = evaluate_demotion(existing, policy, now=now)
            target = Classification.MINOR
        case _ as unreachable:
            assert_never(unreachable)
    if not evaluation.should_change:
        return None, evaluation.reason
    return target, evaluation.reason


__all__ = ["plan_actions"]
