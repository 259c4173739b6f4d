from __future__ import annotations

import copy

from entitystate.domain.delta import MISSING, DeltaEngine, DeltaOperation
from tests.helpers.clocks import FakeClock


def test_batch_isolates_invalid_operations(engine: DeltaEngine) -> None:
    document: dict[str, object] = {}
    operations = [
        {"op": "set", "path": "a", "value": 1},
        {"op": "bogus", "path": "b", "value": 2},
        {"op": "set", "path": "c", "value": 3},
    ]

    results = engine.apply_batch(document, operations)

    assert document == {"a": 1, "c": 3}
    assert [result.success for result in results] == [True, False, True]
    assert results[1].operation == operations[1]
    assert str(results[2].operation.path) == "c"  # pyright: ignore[reportAttributeAccessIssue]
    assert results[1].error is not None


def test_batch_isolates_type_mismatches(engine: DeltaEngine) -> None:
    document: dict[str, object] = {"status": "fine"}
    operations = [
        DeltaOperation.create("set", "status.mood", "Calm"),
        DeltaOperation.create("set", "energy", "High"),
    ]

    results = engine.apply_batch(document, operations)

    assert [result.success for result in results] == [False, True]
    assert document == {"status": "fine", "energy": "High"}


def test_preview_never_mutates(engine: DeltaEngine) -> None:
    document: dict[str, object] = {"gold": 7}
    before = copy.deepcopy(document)

    preview = engine.preview(document, DeltaOperation.create("increment", "gold", "-10"))

    assert document == before
    assert preview.old_value == 7
    assert preview.new_value == -3
    assert preview.error is None


def test_preview_new_value_matches_apply(engine: DeltaEngine) -> None:
    document: dict[str, object] = {"knowledge": ["a"]}
    operation = DeltaOperation.create("add", "knowledge", "b")

    preview = engine.preview(document, operation)
    engine.apply(document, operation)

    assert preview.new_value == document["knowledge"]


def test_preview_reports_absent_values(engine: DeltaEngine) -> None:
    preview = engine.preview({}, DeltaOperation.create("set", "a.b", 1))

    assert preview.old_value is MISSING
    assert preview.new_value == 1


def test_preview_batch_sees_earlier_effects(engine: DeltaEngine) -> None:
    document: dict[str, object] = {}
    operations = [
        DeltaOperation.create("increment", "gold", 5),
        DeltaOperation.create("increment", "gold", 2),
    ]

    previews = engine.preview_batch(document, operations)

    assert [(p.old_value, p.new_value) for p in previews] == [(MISSING, 5), (5, 7)]
    assert document == {}


def test_preview_batch_records_failures(engine: DeltaEngine) -> None:
    previews = engine.preview_batch(
        {"status": "fine"},
        [{"op": "nope", "path": "x"}, {"op": "set", "path": "status.mood", "value": "Calm"}],
    )

    assert previews[0].error is not None
    assert previews[0].path == "x"
    assert previews[1].error is not None
    assert previews[1].old_value is MISSING


def test_history_is_bounded_and_keeps_old_values() -> None:
    clock = FakeClock()
    engine = DeltaEngine(history_limit=3, clock=clock)
    document: dict[str, object] = {}

    for value in range(5):
        engine.apply(document, DeltaOperation.create("set", "count", value))

    history = engine.history
    assert len(history) == 3
    assert [entry.old_value for entry in history] == [1, 2, 3]
    assert history[-1].timestamp == clock.now

    engine.clear_history()
    assert engine.history == []


def test_history_skips_failed_operations(engine: DeltaEngine) -> None:
    engine.apply_batch({"a": "x"}, [{"op": "set", "path": "a.b", "value": 1}])

    assert engine.history == []
