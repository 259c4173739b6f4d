"""Public domain model surface."""

from __future__ import annotations

from entitystate.domain.model.entity import (
    PRIMARY_RELATIONSHIP,
    UNKNOWN,
    Appearance,
    EntityMeta,
    EntityRecord,
    Equipped,
    Inventory,
    MajorRecord,
    MinorPayload,
    MinorRecord,
    NarrativeRole,
    Personality,
    Relationship,
    Scalar,
    Status,
    TimelineEntry,
    Trackers,
    new_major_record,
    new_meta,
    new_minor_record,
    parse_record,
)
from entitystate.domain.model.enums import Classification
from entitystate.domain.model.identity import derive_entity_id
from entitystate.domain.model.primary import (
    is_primary_document,
    new_primary_document,
    touch_primary_document,
)

__all__ = [  # noqa: RUF022
    # identity
    "Classification",
    "derive_entity_id",
    # records
    "EntityMeta",
    "EntityRecord",
    "MinorRecord",
    "MinorPayload",
    "MajorRecord",
    "Trackers",
    "Status",
    "Appearance",
    "Inventory",
    "Equipped",
    "Personality",
    "Relationship",
    "Scalar",
    "TimelineEntry",
    "NarrativeRole",
    "PRIMARY_RELATIONSHIP",
    "UNKNOWN",
    "new_meta",
    "new_minor_record",
    "new_major_record",
    "parse_record",
    # primary document
    "new_primary_document",
    "touch_primary_document",
    "is_primary_document",
]
