"""Pure transforms between the minor and major record shapes.

Both directions return a new record and leave their input untouched. Any
unexpected shape surfaces as :class:`MigrationError`, so callers can keep the
pre-migration record.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

from pydantic import ValidationError

from entitystate.domain.errors import MigrationError
from entitystate.domain.model import (
    PRIMARY_RELATIONSHIP,
    Classification,
    MajorRecord,
    MinorPayload,
    MinorRecord,
    Relationship,
    TimelineEntry,
    Trackers,
)

from .sentiment import derive_trust

if TYPE_CHECKING:
    from datetime import datetime

    from entitystate.domain.model import EntityMeta, EntityRecord, Scalar

log = logging.getLogger(__name__)

FIRST_TRACKED_PREFIX = "First tracked: "
PROMOTED_RELATIONSHIP_NOTE = "established while tracked as minor"
NEUTRAL_SENTIMENT = "Neutral"

_MAX_TRAITS = 3
_MAX_KNOWLEDGE = 2


def promote(record: EntityRecord, reason: str, *, now: datetime) -> MajorRecord:
    """Expand a minor record into the comprehensive shape."""

    if not isinstance(record, MinorRecord):
        raise MigrationError(f"Cannot promote {record.meta.id}: it is not a minor record")
    try:
        promoted = _expand(record, reason, now=now)
    except (ValidationError, ValueError, TypeError) as exc:
        raise MigrationError(f"Promotion of {record.meta.id} failed: {exc}") from exc
    log.info("Promoted %s to major: %s", record.meta.id, reason)
    return promoted


def demote(record: EntityRecord, reason: str, *, now: datetime) -> MinorRecord:
    """Condense a major record into the lightweight shape."""

    if not isinstance(record, MajorRecord):
        raise MigrationError(f"Cannot demote {record.meta.id}: it is not a major record")
    try:
        demoted = _condense(record, reason, now=now)
    except (ValidationError, ValueError, TypeError) as exc:
        raise MigrationError(f"Demotion of {record.meta.id} failed: {exc}") from exc
    log.info("Demoted %s to minor: %s", record.meta.id, reason)
    return demoted


def transition(
    record: EntityRecord,
    target: Classification,
    reason: str,
    *,
    now: datetime,
) -> EntityRecord:
    match target:
        case Classification.MAJOR:
            return promote(record, reason, now=now)
        case Classification.MINOR:
            return demote(record, reason, now=now)
        case _ as unreachable:
            assert_never(unreachable)


def _expand(record: MinorRecord, reason: str, *, now: datetime) -> MajorRecord:
    meta = _copy_meta(
        record.meta,
        classification=Classification.MAJOR,
        promoted_from=Classification.MINOR,
        promotion_reason=reason,
        last_updated=now,
    )
    data = record.data

    trackers = Trackers()
    if data.notes:
        trackers.knowledge.append(data.notes)
    if data.sentiment:
        trackers.relationships[PRIMARY_RELATIONSHIP] = Relationship(
            sentiment=data.sentiment,
            trust_level=derive_trust(data.sentiment),
            notes=PROMOTED_RELATIONSHIP_NOTE,
        )

    timeline = [
        TimelineEntry(
            event=FIRST_TRACKED_PREFIX + (data.notes or meta.name),
            timestamp=meta.first_seen.isoformat(),
        )
    ]
    if data.last_context:
        timeline.append(
            TimelineEntry(event=data.last_context, timestamp=meta.last_seen.isoformat())
        )

    return MajorRecord(meta=meta, trackers=trackers, timeline=timeline)


def _condense(record: MajorRecord, reason: str, *, now: datetime) -> MinorRecord:
    meta = _copy_meta(
        record.meta,
        classification=Classification.MINOR,
        demoted_from=Classification.MAJOR,
        demotion_reason=reason,
        last_updated=now,
    )
    trackers = record.trackers
    personality = trackers.personality
    role = record.narrative_role
    last_event = _text(record.timeline[-1].event) if record.timeline else ""

    segments: list[str] = []
    traits = [_text(trait) for trait in personality.traits[:_MAX_TRAITS]]
    if any(traits):
        segments.append("Traits: " + ", ".join(t for t in traits if t))
    _labelled(segments, "Motivation", personality.motivations)
    _labelled(segments, "Role", role.archetype)
    _labelled(segments, "Function", role.story_function)
    _labelled(segments, "Last known", last_event)
    knowledge = [_text(item) for item in trackers.knowledge[-_MAX_KNOWLEDGE:]]
    if any(knowledge):
        segments.append("Knows: " + "; ".join(k for k in knowledge if k))

    return MinorRecord(
        meta=meta,
        data=MinorPayload(
            notes=". ".join(segments) or meta.name,
            sentiment=_condensed_sentiment(trackers),
            last_context=last_event,
        ),
    )


def _condensed_sentiment(trackers: Trackers) -> str:
    primary = trackers.relationships.get(PRIMARY_RELATIONSHIP)
    if primary is not None and primary.sentiment:
        return _text(primary.sentiment)
    for relationship in trackers.relationships.values():
        if relationship.sentiment:
            return _text(relationship.sentiment)
    return NEUTRAL_SENTIMENT


def _copy_meta(meta: EntityMeta, **update: object) -> EntityMeta:
    return meta.model_copy(deep=True, update=update)


def _labelled(segments: list[str], label: str, value: Scalar) -> None:
    text = _text(value)
    if text:
        segments.append(f"{label}: {text}")


def _text(value: object) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


__all__ = ["demote", "promote", "transition"]
