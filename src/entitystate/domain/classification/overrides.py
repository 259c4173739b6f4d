"""Manual classification overrides invoked by the user.

These bypass pin suppression; otherwise they reuse the migration transforms.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from entitystate.domain.model import Classification

from .migrate import transition

if TYPE_CHECKING:
    from entitystate.domain.model import EntityRecord
    from entitystate.domain.registry import EntityRegistry

MANUAL_PROMOTION_REASON = "Manually promoted by user"
MANUAL_DEMOTION_REASON = "Manually demoted by user"


def promote_entity(
    registry: EntityRegistry,
    entity_id: str,
    reason: str = MANUAL_PROMOTION_REASON,
) -> EntityRecord:
    return _move(registry, entity_id, Classification.MAJOR, reason)


def demote_entity(
    registry: EntityRegistry,
    entity_id: str,
    reason: str = MANUAL_DEMOTION_REASON,
) -> EntityRecord:
    return _move(registry, entity_id, Classification.MINOR, reason)


def toggle_pin(registry: EntityRegistry, entity_id: str) -> bool:
    return registry.toggle_pin(entity_id)


def _move(
    registry: EntityRegistry,
    entity_id: str,
    target: Classification,
    reason: str,
) -> EntityRecord:
    record = registry.require(entity_id)
    intent = registry.request_classification(entity_id, target, reason=reason, manual=True)
    if intent is None:
        return record
    migrated = transition(record, intent.target, intent.reason, now=registry.clock())
    return registry.replace(entity_id, migrated)


__all__ = ["demote_entity", "promote_entity", "toggle_pin"]
