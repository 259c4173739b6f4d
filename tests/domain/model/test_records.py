from __future__ import annotations

import pytest
from pydantic import ValidationError

from entitystate.domain.errors import UnresolvableEntityError
from entitystate.domain.model import (
    Classification,
    MajorRecord,
    MinorRecord,
    derive_entity_id,
    new_major_record,
    new_minor_record,
    new_primary_document,
    parse_record,
)
from tests.helpers.clocks import START


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Tom the Barkeep", "tom_the_barkeep"),
        ("  tom   the  BARKEEP!! ", "tom_the_barkeep"),
        ("Lady Ærin-Voss", "lady_rinvoss"),
        ("R2 D2", "r2_d2"),
    ],
)
def test_entity_id_is_derived_deterministically(name: str, expected: str) -> None:
    assert derive_entity_id(name) == expected


@pytest.mark.parametrize("name", ["", "   ", "!!!", "__"])
def test_names_without_usable_characters_are_unresolvable(name: str) -> None:
    with pytest.raises(UnresolvableEntityError):
        derive_entity_id(name)


def test_minor_record_serializes_to_camel_case() -> None:
    record = new_minor_record("Tom the Barkeep", now=START, notes="Friendly", last_context="bar")

    document = record.to_document()

    assert document["data"] == {"notes": "Friendly", "sentiment": "", "lastContext": "bar"}
    meta = document["meta"]
    assert isinstance(meta, dict)
    assert meta["id"] == "tom_the_barkeep"
    assert meta["classification"] == "minor"
    assert meta["appearanceCount"] == 1
    assert meta["userPinned"] is False
    assert "firstSeen" in meta


def test_major_record_defaults_are_neutral() -> None:
    record = new_major_record("Mira", now=START)

    document = record.to_document()

    trackers = document["trackers"]
    assert isinstance(trackers, dict)
    assert trackers["status"] == {
        "health": "Unknown",
        "energy": "Unknown",
        "mood": "Unknown",
        "conditions": [],
    }
    assert trackers["inventory"] == {
        "equipped": {"mainHand": "Unknown", "offHand": "Unknown"},
        "bag": [],
    }
    assert document["timeline"] == []
    assert document["narrativeRole"] == {
        "archetype": "",
        "storyFunction": "",
        "conflictsWith": [],
        "alliedWith": [],
    }


def test_parse_record_dispatches_on_classification() -> None:
    minor = new_minor_record("Tom", now=START).to_document()
    major = new_major_record("Mira", now=START).to_document()

    assert isinstance(parse_record(minor), MinorRecord)
    assert isinstance(parse_record(major), MajorRecord)


def test_parse_record_accepts_uppercase_classification() -> None:
    document = new_minor_record("Tom", now=START).to_document()
    meta = document["meta"]
    assert isinstance(meta, dict)
    meta["classification"] = "MINOR"

    record = parse_record(document)

    assert record.meta.classification is Classification.MINOR


def test_payload_extras_survive_a_round_trip() -> None:
    document = new_minor_record("Tom", now=START).to_document()
    data = document["data"]
    assert isinstance(data, dict)
    data["favouriteDrink"] = "ale"

    assert parse_record(document).to_document()["data"] == {
        "notes": "",
        "sentiment": "",
        "lastContext": "",
        "favouriteDrink": "ale",
    }


def test_record_cannot_carry_both_payload_shapes() -> None:
    document = new_minor_record("Tom", now=START).to_document()
    document["trackers"] = {}

    with pytest.raises(ValidationError):
        parse_record(document)


def test_shape_must_match_classification() -> None:
    document = new_minor_record("Tom", now=START).to_document()
    meta = document["meta"]
    assert isinstance(meta, dict)
    meta["classification"] = "major"

    with pytest.raises(ValidationError):
        parse_record(document)


def test_unknown_classification_is_rejected() -> None:
    document = new_minor_record("Tom", now=START).to_document()
    meta = document["meta"]
    assert isinstance(meta, dict)
    meta["classification"] = "legendary"

    with pytest.raises(ValidationError):
        parse_record(document)


def test_appearance_count_must_be_positive() -> None:
    document = new_minor_record("Tom", now=START).to_document()
    meta = document["meta"]
    assert isinstance(meta, dict)
    meta["appearanceCount"] = 0

    with pytest.raises(ValidationError):
        parse_record(document)


def test_record_sighting_bumps_count_and_last_seen() -> None:
    record = new_minor_record("Tom", now=START)
    later = START.replace(hour=18)

    record.meta.record_sighting(later)

    assert record.meta.appearance_count == 2
    assert record.meta.last_seen == later
    assert record.meta.first_seen == START


def test_primary_document_has_every_section() -> None:
    document = new_primary_document("Aria", now=START)

    assert set(document) == {"meta", "trackers", "timeline", "plotThreads"}
    trackers = document["trackers"]
    assert isinstance(trackers, dict)
    assert set(trackers) == {"status", "appearance", "inventory", "relationships", "knowledge"}
    assert document["plotThreads"] == {"active": [], "resolved": []}
