"""Entity records: the lightweight (minor) and comprehensive (major) shapes.

Records are JSON documents first: they are addressed by delta-operation paths
and persisted as-is, so they are modelled as pydantic models with camelCase
aliases. Unknown keys inside a payload are kept; unknown top-level sections are
rejected so a record never carries both payload shapes.
"""

# switch off type warnings because of default_factory=list
# pyright: reportUnknownVariableType=false

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    JsonValue,
    Tag,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .enums import Classification
from .identity import derive_entity_id

if TYPE_CHECKING:
    from entitystate.domain.delta import Document

Scalar = str | int | float | None

UNKNOWN = "Unknown"
PRIMARY_RELATIONSHIP = "primary"


class DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_document(self) -> Document:
        return self.model_dump(mode="json", by_alias=True)


class RecordModel(DocumentModel):
    model_config = ConfigDict(extra="forbid")


# Shared meta -------------------------------------------------------------------


class EntityMeta(DocumentModel):
    id: str
    name: str
    classification: Classification
    first_seen: datetime
    last_seen: datetime
    appearance_count: int = Field(default=1, ge=1)
    user_pinned: bool = False
    created_at: datetime
    last_updated: datetime
    promoted_from: Classification | None = None
    promotion_reason: str | None = None
    demoted_from: Classification | None = None
    demotion_reason: str | None = None

    @field_validator("classification", "promoted_from", "demoted_from", mode="before")
    @classmethod
    def _normalize_classification(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    def record_sighting(self, now: datetime) -> None:
        self.appearance_count += 1
        self.last_seen = now


# Minor payload -----------------------------------------------------------------


class MinorPayload(DocumentModel):
    notes: str = ""
    sentiment: str = ""
    last_context: str = ""


class MinorRecord(RecordModel):
    meta: EntityMeta
    data: MinorPayload = Field(default_factory=MinorPayload)

    @model_validator(mode="after")
    def _check_classification(self) -> Self:
        if self.meta.classification is not Classification.MINOR:
            raise ValueError("minor record must carry classification 'minor'")
        return self


# Major payload -----------------------------------------------------------------


class Status(DocumentModel):
    health: Scalar = UNKNOWN
    energy: Scalar = UNKNOWN
    mood: Scalar = UNKNOWN
    conditions: list[JsonValue] = Field(default_factory=list)


class Appearance(DocumentModel):
    clothing: Scalar = ""
    physical: Scalar = ""


class Equipped(DocumentModel):
    main_hand: Scalar = UNKNOWN
    off_hand: Scalar = UNKNOWN


class Inventory(DocumentModel):
    equipped: Equipped = Field(default_factory=Equipped)
    bag: list[JsonValue] = Field(default_factory=list)


class Personality(DocumentModel):
    traits: list[JsonValue] = Field(default_factory=list)
    goals: list[JsonValue] = Field(default_factory=list)
    fears: list[JsonValue] = Field(default_factory=list)
    motivations: Scalar = ""


class Relationship(DocumentModel):
    sentiment: Scalar = ""
    trust_level: int | float = 50
    notes: Scalar = ""


class Trackers(DocumentModel):
    status: Status = Field(default_factory=Status)
    appearance: Appearance = Field(default_factory=Appearance)
    inventory: Inventory = Field(default_factory=Inventory)
    personality: Personality = Field(default_factory=Personality)
    relationships: dict[str, Relationship] = Field(default_factory=dict)
    knowledge: list[JsonValue] = Field(default_factory=list)


class TimelineEntry(DocumentModel):
    event: Scalar
    timestamp: str = ""


class NarrativeRole(DocumentModel):
    archetype: Scalar = ""
    story_function: Scalar = ""
    conflicts_with: list[JsonValue] = Field(default_factory=list)
    allied_with: list[JsonValue] = Field(default_factory=list)


class MajorRecord(RecordModel):
    meta: EntityMeta
    trackers: Trackers = Field(default_factory=Trackers)
    timeline: list[TimelineEntry] = Field(default_factory=list)
    narrative_role: NarrativeRole = Field(default_factory=NarrativeRole)

    @model_validator(mode="after")
    def _check_classification(self) -> Self:
        if self.meta.classification is not Classification.MAJOR:
            raise ValueError("major record must carry classification 'major'")
        return self


# Tagged union ------------------------------------------------------------------

type EntityRecord = MinorRecord | MajorRecord


def _record_tag(value: Any) -> str | None:
    if isinstance(value, dict):
        meta: Any = value.get("meta")  # pyright: ignore[reportUnknownMemberType]
        raw = meta.get("classification") if isinstance(meta, dict) else None  # pyright: ignore[reportUnknownMemberType]
    else:
        raw = getattr(getattr(value, "meta", None), "classification", None)
    if isinstance(raw, str):
        return raw.strip().lower()
    return None


_RECORD_ADAPTER: TypeAdapter[MinorRecord | MajorRecord] = TypeAdapter(
    Annotated[
        Annotated[MinorRecord, Tag(Classification.MINOR.value)]
        | Annotated[MajorRecord, Tag(Classification.MAJOR.value)],
        Discriminator(_record_tag),
    ]
)


def parse_record(document: object) -> EntityRecord:
    """Validate a JSON document as one of the two record shapes.

    Raises ``pydantic.ValidationError`` when the document matches neither.
    """

    return _RECORD_ADAPTER.validate_python(document)


# Factories ---------------------------------------------------------------------


def new_meta(name: str, classification: Classification, *, now: datetime) -> EntityMeta:
    return EntityMeta(
        id=derive_entity_id(name),
        name=name,
        classification=classification,
        first_seen=now,
        last_seen=now,
        appearance_count=1,
        created_at=now,
        last_updated=now,
    )


def new_minor_record(
    name: str,
    *,
    now: datetime,
    notes: str = "",
    sentiment: str = "",
    last_context: str = "",
) -> MinorRecord:
    return MinorRecord(
        meta=new_meta(name, Classification.MINOR, now=now),
        data=MinorPayload(notes=notes, sentiment=sentiment, last_context=last_context),
    )


def new_major_record(name: str, *, now: datetime) -> MajorRecord:
    return MajorRecord(meta=new_meta(name, Classification.MAJOR, now=now))


__all__ = [
    "PRIMARY_RELATIONSHIP",
    "UNKNOWN",
    "Appearance",
    "EntityMeta",
    "EntityRecord",
    "Equipped",
    "Inventory",
    "MajorRecord",
    "MinorPayload",
    "MinorRecord",
    "NarrativeRole",
    "Personality",
    "Relationship",
    "Scalar",
    "Status",
    "TimelineEntry",
    "Trackers",
    "new_major_record",
    "new_meta",
    "new_minor_record",
    "parse_record",
]
