from __future__ import annotations

from typing import TYPE_CHECKING

from entitystate.domain.classification import demote_entity, promote_entity, toggle_pin
from entitystate.domain.model import Classification, MajorRecord, MinorRecord
from entitystate.domain.registry import EntityDefaults

if TYPE_CHECKING:
    from entitystate.domain.registry import EntityRegistry


def test_manual_promotion_bypasses_pin(registry: EntityRegistry) -> None:
    registry.resolve("Tom", EntityDefaults(notes="Friendly"))
    assert toggle_pin(registry, "tom") is True

    promoted = promote_entity(registry, "tom")

    assert isinstance(promoted, MajorRecord)
    assert registry.require("tom") is promoted
    assert promoted.meta.user_pinned
    assert promoted.meta.promotion_reason == "Manually promoted by user"
    assert promoted.trackers.knowledge == ["Friendly"]


def test_manual_demotion_with_reason(registry: EntityRegistry) -> None:
    registry.resolve("Vex", EntityDefaults(classification=Classification.MAJOR))

    demoted = demote_entity(registry, "vex", "Written out")

    assert isinstance(demoted, MinorRecord)
    assert demoted.meta.demotion_reason == "Written out"


def test_override_to_current_tier_changes_nothing(registry: EntityRegistry) -> None:
    record = registry.resolve("Tom")

    assert demote_entity(registry, "tom") is record
    assert record.meta.demoted_from is None
