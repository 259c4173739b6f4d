from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from entitystate.common.coalescing import CoalescingWriter, WriteState
from entitystate.domain.delta import DeltaOperation
from entitystate.domain.errors import (
    InvalidOperationError,
    InvalidRegistryDocumentError,
    UnresolvableEntityError,
)
from entitystate.domain.model import (
    Classification,
    MajorRecord,
    MinorRecord,
    new_minor_record,
)
from entitystate.domain.registry import EntityDefaults, EntityRegistry

if TYPE_CHECKING:
    from entitystate.adapters.memory import InMemoryDocumentStore
    from tests.helpers.clocks import FakeClock, VirtualTimer


def test_resolve_creates_minor_record_on_first_sighting(registry: EntityRegistry) -> None:
    record = registry.resolve("Tom the Barkeep", EntityDefaults(notes="Friendly"))

    assert isinstance(record, MinorRecord)
    assert record.meta.id == "tom_the_barkeep"
    assert record.meta.appearance_count == 1
    assert record.data.notes == "Friendly"
    assert "tom_the_barkeep" in registry
    assert len(registry) == 1


def test_every_resolve_is_a_sighting(registry: EntityRegistry, clock: FakeClock) -> None:
    registry.resolve("Tom the Barkeep", EntityDefaults(notes="Friendly"))
    later = clock.advance(hours=2)
    for _ in range(3):
        record = registry.resolve("tom the barkeep")

    assert record.meta.appearance_count == 4
    assert record.meta.last_seen == later
    assert record.data.notes == "Friendly"


def test_record_sighting_never_creates(registry: EntityRegistry, clock: FakeClock) -> None:
    registry.resolve("Tom")
    later = clock.advance(hours=1)

    record = registry.record_sighting("tom")

    assert record.meta.appearance_count == 2
    assert record.meta.last_seen == later
    with pytest.raises(UnresolvableEntityError):
        registry.record_sighting("mira")
    assert "mira" not in registry


def test_resolve_can_create_major_records(registry: EntityRegistry) -> None:
    record = registry.resolve(
        "Captain Vex",
        EntityDefaults(notes="Runs the docks", sentiment="hostile", classification=Classification.MAJOR),
    )

    assert isinstance(record, MajorRecord)
    assert record.trackers.knowledge == ["Runs the docks"]
    primary = record.trackers.relationships["primary"]
    assert primary.sentiment == "hostile"
    assert primary.trust_level == 15


def test_resolve_rejects_unusable_names(registry: EntityRegistry) -> None:
    with pytest.raises(UnresolvableEntityError):
        registry.resolve("!!!")


def test_lookups_do_not_count_as_sightings(registry: EntityRegistry) -> None:
    registry.resolve("Tom")

    assert registry.get("tom") is registry.get_by_name("TOM")
    assert registry.require("tom").meta.appearance_count == 1
    assert registry.get("nobody") is None
    assert registry.get_by_name("???") is None
    with pytest.raises(UnresolvableEntityError):
        registry.require("nobody")


def test_classification_filters(registry: EntityRegistry) -> None:
    registry.resolve("Tom")
    registry.resolve("Vex", EntityDefaults(classification=Classification.MAJOR))

    assert [r.meta.id for r in registry.minors()] == ["tom"]
    assert [r.meta.id for r in registry.majors()] == ["vex"]
    assert [r.meta.id for r in registry.by_classification(Classification.MAJOR)] == ["vex"]


def test_request_classification_returns_intent(registry: EntityRegistry) -> None:
    registry.resolve("Tom")

    intent = registry.request_classification("tom", Classification.MAJOR, reason="recurring")

    assert intent is not None
    assert intent.current is Classification.MINOR
    assert intent.target is Classification.MAJOR
    assert intent.reason == "recurring"
    assert registry.request_classification("tom", Classification.MINOR, reason="x") is None


def test_pinned_entities_ignore_automatic_requests(registry: EntityRegistry) -> None:
    registry.resolve("Tom")
    assert registry.toggle_pin("tom") is True

    assert registry.request_classification("tom", Classification.MAJOR, reason="auto") is None
    manual = registry.request_classification(
        "tom", Classification.MAJOR, reason="user", manual=True
    )
    assert manual is not None
    assert manual.manual


def test_mention_list_is_bounded_and_most_recent_first(registry: EntityRegistry) -> None:
    ids = [registry.resolve(f"Guard {n}").meta.id for n in range(15)]

    for entity_id in ids:
        registry.mark_mentioned(entity_id)

    mentioned = registry.scene.recently_mentioned_ids
    assert len(mentioned) == 10
    assert mentioned[0] == ids[-1]
    assert mentioned == list(reversed(ids))[:10]


def test_mark_mentioned_dedups_and_counts_sighting(registry: EntityRegistry) -> None:
    registry.resolve("Tom")
    registry.resolve("Mira")

    registry.mark_mentioned("tom")
    registry.mark_mentioned("mira")
    registry.mark_mentioned("tom")

    assert registry.scene.recently_mentioned_ids == ["tom", "mira"]
    assert registry.require("tom").meta.appearance_count == 3
    registry.mark_mentioned("mira", sighting=False)
    assert registry.require("mira").meta.appearance_count == 2


def test_update_scene_keeps_known_ids_only(registry: EntityRegistry) -> None:
    registry.resolve("Tom")

    registry.update_scene(current_scene="tavern", active_ids=["tom", "ghost", "tom"])

    assert registry.scene.current_scene == "tavern"
    assert registry.scene.active_entity_ids == ["tom"]
    assert [r.meta.id for r in registry.active_entities()] == ["tom"]


def test_replace_swaps_whole_record(registry: EntityRegistry, clock: FakeClock) -> None:
    original = registry.resolve("Tom")
    later = clock.advance(minutes=5)
    replacement = original.model_copy(deep=True)
    replacement.data.notes = "Replaced"

    registry.replace("tom", replacement)

    stored = registry.require("tom")
    assert stored is replacement
    assert stored.meta.last_updated == later
    assert original.data.notes == ""


def test_replace_requires_matching_id(registry: EntityRegistry, clock: FakeClock) -> None:
    registry.resolve("Tom")

    with pytest.raises(InvalidOperationError):
        registry.replace("tom", new_minor_record("Mira", now=clock()))
    with pytest.raises(UnresolvableEntityError):
        registry.replace("mira", new_minor_record("Mira", now=clock()))


def test_apply_operations_commits_valid_operations(registry: EntityRegistry) -> None:
    registry.resolve("Tom")

    results = registry.apply_operations(
        "tom",
        [
            DeltaOperation.create("set", "data.notes", "Pours a mean ale"),
            DeltaOperation.create("set", "data.mood", "cheerful"),
        ],
    )

    assert all(result.success for result in results)
    record = registry.require("tom")
    assert isinstance(record, MinorRecord)
    assert record.data.notes == "Pours a mean ale"
    assert record.to_document()["data"]["mood"] == "cheerful"  # pyright: ignore[reportIndexIssue, reportCallIssue, reportArgumentType]


def test_apply_operations_rolls_back_shape_violations(registry: EntityRegistry) -> None:
    registry.resolve("Tom", EntityDefaults(notes="Friendly"))

    results = registry.apply_operations(
        "tom",
        [
            DeltaOperation.create("add", "data.notes", "extra"),
            DeltaOperation.create("set", "trackers.status.mood", "Calm"),
            DeltaOperation.create("set", "meta.classification", "major"),
            DeltaOperation.create("set", "data.sentiment", "warm"),
        ],
    )

    assert [result.success for result in results] == [False, False, False, True]
    record = registry.require("tom")
    assert isinstance(record, MinorRecord)
    assert record.data.notes == "Friendly"
    assert record.data.sentiment == "warm"
    assert record.meta.classification is Classification.MINOR


def test_apply_operations_on_unknown_entity_raises(registry: EntityRegistry) -> None:
    with pytest.raises(UnresolvableEntityError):
        registry.apply_operations("nobody", [DeltaOperation.create("set", "data.notes", "x")])


def test_delete_scrubs_scene_lists(registry: EntityRegistry) -> None:
    registry.resolve("Tom")
    registry.mark_mentioned("tom")
    registry.update_scene(active_ids=["tom"])

    registry.delete("tom")

    assert "tom" not in registry
    assert registry.scene.recently_mentioned_ids == []
    assert registry.scene.active_entity_ids == []


def test_stats_count_tiers_and_scene(registry: EntityRegistry) -> None:
    registry.resolve("Tom")
    registry.resolve("Vex", EntityDefaults(classification=Classification.MAJOR))
    registry.mark_mentioned("vex")

    stats = registry.stats()

    assert (stats.total, stats.major, stats.minor, stats.active, stats.mentioned) == (2, 1, 1, 0, 1)


def test_document_round_trip(registry: EntityRegistry, clock: FakeClock) -> None:
    registry.resolve("Tom", EntityDefaults(notes="Friendly", sentiment="warm"))
    registry.resolve("Vex", EntityDefaults(classification=Classification.MAJOR))
    registry.mark_mentioned("tom")
    registry.update_scene(current_scene="docks", active_ids=["vex"])

    document = registry.to_document()
    restored = EntityRegistry.from_document(document, clock=clock)

    assert restored.to_document() == document
    meta = document["meta"]
    assert isinstance(meta, dict)
    assert (meta["totalEntities"], meta["majorCount"], meta["minorCount"]) == (2, 1, 1)


def test_export_and_import_json(registry: EntityRegistry, clock: FakeClock) -> None:
    registry.resolve("Tom", EntityDefaults(notes="Friendly"))
    other = EntityRegistry(clock=clock)

    other.import_json(registry.export_json())

    assert other.to_document() == registry.to_document()


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        '{"entities": []}',
        '{"entities": {"tom": {"meta": {}}}}',
        '{"entities": {}, "sceneContext": {"activeEntityIds": "tom"}}',
    ],
)
def test_import_rejects_malformed_documents(registry: EntityRegistry, payload: str) -> None:
    with pytest.raises(InvalidRegistryDocumentError):
        registry.import_json(payload)


def test_import_rejects_mismatched_keys(registry: EntityRegistry, clock: FakeClock) -> None:
    record = new_minor_record("Tom", now=clock())
    document = {"entities": {"someone_else": record.to_document()}}

    with pytest.raises(InvalidRegistryDocumentError):
        EntityRegistry.from_document(document)


def test_mutations_schedule_a_coalesced_save(
    memory_store: InMemoryDocumentStore, clock: FakeClock, timer: VirtualTimer
) -> None:
    writer = CoalescingWriter(memory_store, quiet_period=0.5, clock=timer)
    registry = EntityRegistry(clock=clock, scheduler=writer, storage_key="s:entities")

    registry.resolve("Tom")
    registry.resolve("Tom")

    assert writer.state("s:entities") is WriteState.PENDING
    assert memory_store.load("s:entities") is None
    timer.advance(0.5)
    assert writer.tick() == ["s:entities"]
    stored = memory_store.load("s:entities")
    assert stored is not None
    assert stored["entities"]["tom"]["meta"]["appearanceCount"] == 2  # pyright: ignore[reportIndexIssue, reportCallIssue, reportArgumentType]
    assert memory_store.save_count == 1
