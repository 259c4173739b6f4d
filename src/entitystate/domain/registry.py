"""Id-keyed collection of entity records plus scene bookkeeping.

The registry is an explicit instance owned by a tracking session. Every
mutation notifies the injected save scheduler; writes happen later and never
block the caller.

Records returned by lookups are the registry's own objects. Change them through
:meth:`EntityRegistry.replace` or :meth:`EntityRegistry.apply_operations` so the
change is validated and persisted.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, assert_never

from pydantic import ValidationError

from entitystate.domain.classification.sentiment import derive_trust
from entitystate.domain.clock import utcnow
from entitystate.domain.delta import DeltaEngine, OperationResult
from entitystate.domain.errors import (
    EntityStateError,
    InvalidOperationError,
    InvalidRegistryDocumentError,
    TypeMismatchError,
    UnresolvableEntityError,
)
from entitystate.domain.model import (
    PRIMARY_RELATIONSHIP,
    Classification,
    EntityRecord,
    MajorRecord,
    MinorRecord,
    Relationship,
    derive_entity_id,
    new_major_record,
    new_minor_record,
    parse_record,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from datetime import datetime

    from entitystate.domain.clock import Clock
    from entitystate.domain.delta import DeltaOperation, Document
    from entitystate.domain.ports import SaveScheduler

log = logging.getLogger(__name__)

REGISTRY_DOCUMENT_VERSION: Final[str] = "1.0"
DEFAULT_MENTION_LIMIT: Final[int] = 10


@dataclass(frozen=True, slots=True)
class EntityDefaults:
    """Seed values for an entity created on first sighting."""

    notes: str = ""
    sentiment: str = ""
    classification: Classification = Classification.MINOR


@dataclass(frozen=True, slots=True)
class TransitionIntent:
    """A classification change that has been allowed but not yet performed."""

    entity_id: str
    current: Classification
    target: Classification
    reason: str
    manual: bool = False


@dataclass(slots=True)
class SceneContext:
    current_scene: str | None = None
    active_entity_ids: list[str] = field(default_factory=list[str])
    recently_mentioned_ids: list[str] = field(default_factory=list[str])

    def to_document(self) -> Document:
        return {
            "currentScene": self.current_scene,
            "activeEntityIds": list(self.active_entity_ids),
            "recentlyMentionedIds": list(self.recently_mentioned_ids),
        }


@dataclass(frozen=True, slots=True)
class RegistryStats:
    total: int
    major: int
    minor: int
    active: int
    mentioned: int


class EntityRegistry:
    def __init__(
        self,
        *,
        engine: DeltaEngine | None = None,
        clock: Clock = utcnow,
        scheduler: SaveScheduler | None = None,
        storage_key: str = "entities",
        mention_limit: int = DEFAULT_MENTION_LIMIT,
    ) -> None:
        if mention_limit < 1:
            raise ValueError("mention_limit must be at least 1")
        self._engine = engine or DeltaEngine(clock=clock)
        self._clock = clock
        self._scheduler = scheduler
        self._storage_key = storage_key
        self._mention_limit = mention_limit
        self._entities: dict[str, EntityRecord] = {}
        self._scene = SceneContext()

    # Properties ----------------------------------------------------------------

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def engine(self) -> DeltaEngine:
        return self._engine

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def scene(self) -> SceneContext:
        return self._scene

    @property
    def mention_limit(self) -> int:
        return self._mention_limit

    # Lookup --------------------------------------------------------------------

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[EntityRecord]:
        return iter(self._entities.values())

    def get(self, entity_id: str) -> EntityRecord | None:
        return self._entities.get(entity_id)

    def require(self, entity_id: str) -> EntityRecord:
        record = self._entities.get(entity_id)
        if record is None:
            raise UnresolvableEntityError(f"Unknown entity: {entity_id}")
        return record

    def get_by_name(self, name: str) -> EntityRecord | None:
        try:
            return self._entities.get(derive_entity_id(name))
        except UnresolvableEntityError:
            return None

    def entities(self) -> list[EntityRecord]:
        return list(self._entities.values())

    def by_classification(self, classification: Classification) -> list[EntityRecord]:
        return [r for r in self._entities.values() if r.meta.classification is classification]

    def majors(self) -> list[MajorRecord]:
        return [r for r in self._entities.values() if isinstance(r, MajorRecord)]

    def minors(self) -> list[MinorRecord]:
        return [r for r in self._entities.values() if isinstance(r, MinorRecord)]

    def active_entities(self) -> list[EntityRecord]:
        return self._records_for(self._scene.active_entity_ids)

    def recently_mentioned(self) -> list[EntityRecord]:
        return self._records_for(self._scene.recently_mentioned_ids)

    # Sightings -----------------------------------------------------------------

    def resolve(self, name: str, defaults: EntityDefaults | None = None) -> EntityRecord:
        """Look up ``name``, creating it on first sighting.

        Every call counts as a sighting: an existing record gets its
        ``appearanceCount`` incremented and ``lastSeen`` refreshed.
        """

        entity_id = derive_entity_id(name)
        now = self._clock()
        record = self._entities.get(entity_id)
        if record is None:
            record = self._create(name, defaults or EntityDefaults(), now=now)
            self._entities[entity_id] = record
            log.info(
                "Tracking new %s entity %s (%s)",
                record.meta.classification,
                record.meta.name,
                entity_id,
            )
        else:
            record.meta.record_sighting(now)
        self._changed()
        return record

    def record_sighting(self, entity_id: str) -> EntityRecord:
        """Count a sighting of an already tracked entity; never creates one."""

        record = self.require(entity_id)
        record.meta.record_sighting(self._clock())
        self._changed()
        return record

    def mark_mentioned(self, entity_id: str, *, sighting: bool = True) -> None:
        """Move ``entity_id`` to the front of the recently-mentioned list."""

        record = self.require(entity_id)
        mentioned = [eid for eid in self._scene.recently_mentioned_ids if eid != entity_id]
        mentioned.insert(0, entity_id)
        self._scene.recently_mentioned_ids = mentioned[: self._mention_limit]
        if sighting:
            record.meta.record_sighting(self._clock())
        self._changed()

    def update_scene(
        self,
        *,
        current_scene: str | None = None,
        active_ids: Iterable[str] | None = None,
    ) -> None:
        if current_scene is not None:
            self._scene.current_scene = current_scene
        if active_ids is not None:
            self._scene.active_entity_ids = list(
                dict.fromkeys(eid for eid in active_ids if eid in self._entities)
            )
        self._changed()

    # Classification ------------------------------------------------------------

    def request_classification(
        self,
        entity_id: str,
        target: Classification,
        *,
        reason: str,
        manual: bool = False,
    ) -> TransitionIntent | None:
        """Decide whether ``entity_id`` may move to ``target``.

        Returns ``None`` when the entity is already there, or when it is pinned
        and the request is automatic. Pinned entities only move on manual
        requests.
        """

        record = self.require(entity_id)
        current = record.meta.classification
        if current is target:
            return None
        if record.meta.user_pinned and not manual:
            log.warning(
                "Suppressed %s -> %s for pinned entity %s", current, target, entity_id
            )
            return None
        return TransitionIntent(
            entity_id=entity_id, current=current, target=target, reason=reason, manual=manual
        )

    def replace(self, entity_id: str, record: EntityRecord) -> EntityRecord:
        """Swap the whole record for ``entity_id``."""

        self.require(entity_id)
        if record.meta.id != entity_id:
            raise InvalidOperationError(
                f"Record id {record.meta.id!r} does not match entity {entity_id!r}"
            )
        record.meta.last_updated = self._clock()
        self._entities[entity_id] = record
        self._changed()
        return record

    # Operations ----------------------------------------------------------------

    def stage_operations(
        self,
        record: EntityRecord,
        operations: Iterable[DeltaOperation | Mapping[str, object]],
    ) -> tuple[EntityRecord, list[OperationResult]]:
        """Apply ``operations`` to a detached copy of ``record``.

        Each operation is applied and the result re-validated as the record's
        shape. An operation that fails, or leaves a document that no longer
        validates, is rolled back and reported as a failed result. ``record``
        itself is not modified and nothing is committed.
        """

        document = record.to_document()
        entity_id = record.meta.id
        classification = record.meta.classification
        results: list[OperationResult] = []
        for operation in operations:
            snapshot = copy.deepcopy(document)
            try:
                result = self._engine.apply(document, operation)
                candidate = parse_record(document)
                if candidate.meta.id != entity_id:
                    raise TypeMismatchError("Operations may not change an entity's id")
                if candidate.meta.classification is not classification:
                    raise TypeMismatchError(
                        "Operations may not change classification; use a migration"
                    )
            except EntityStateError as exc:
                document = snapshot
                results.append(OperationResult(operation=operation, success=False, error=str(exc)))
                continue
            except ValidationError as exc:
                document = snapshot
                message = f"Result does not fit a {classification} record: {_first_error(exc)}"
                results.append(OperationResult(operation=operation, success=False, error=message))
                continue
            results.append(result)

        for result in results:
            if not result.success:
                log.warning("Update rejected for %s: %s", entity_id, result.error)
        return parse_record(document), results

    def apply_operations(
        self,
        entity_id: str,
        operations: Iterable[DeltaOperation | Mapping[str, object]],
    ) -> list[OperationResult]:
        """Apply ``operations`` to an entity and commit the validated record once."""

        record = self.require(entity_id)
        staged, results = self.stage_operations(record, operations)
        if any(result.success for result in results):
            self.replace(entity_id, staged)
        return results

    # User actions --------------------------------------------------------------

    def toggle_pin(self, entity_id: str) -> bool:
        record = self.require(entity_id)
        record.meta.user_pinned = not record.meta.user_pinned
        record.meta.last_updated = self._clock()
        self._changed()
        return record.meta.user_pinned

    def delete(self, entity_id: str) -> EntityRecord:
        record = self.require(entity_id)
        del self._entities[entity_id]
        scene = self._scene
        scene.active_entity_ids = [eid for eid in scene.active_entity_ids if eid != entity_id]
        scene.recently_mentioned_ids = [
            eid for eid in scene.recently_mentioned_ids if eid != entity_id
        ]
        log.info("Deleted entity %s", entity_id)
        self._changed()
        return record

    def clear(self) -> None:
        self._entities.clear()
        self._scene = SceneContext()
        self._changed()

    def stats(self) -> RegistryStats:
        major = sum(1 for r in self._entities.values() if isinstance(r, MajorRecord))
        return RegistryStats(
            total=len(self._entities),
            major=major,
            minor=len(self._entities) - major,
            active=len(self._scene.active_entity_ids),
            mentioned=len(self._scene.recently_mentioned_ids),
        )

    # Serialization -------------------------------------------------------------

    def to_document(self) -> Document:
        stats = self.stats()
        return {
            "meta": {
                "version": REGISTRY_DOCUMENT_VERSION,
                "lastUpdated": self._clock().isoformat(),
                "totalEntities": stats.total,
                "majorCount": stats.major,
                "minorCount": stats.minor,
            },
            "entities": {eid: record.to_document() for eid, record in self._entities.items()},
            "sceneContext": self._scene.to_document(),
        }

    @classmethod
    def from_document(
        cls,
        document: object,
        *,
        engine: DeltaEngine | None = None,
        clock: Clock = utcnow,
        scheduler: SaveScheduler | None = None,
        storage_key: str = "entities",
        mention_limit: int = DEFAULT_MENTION_LIMIT,
    ) -> EntityRegistry:
        registry = cls(
            engine=engine,
            clock=clock,
            scheduler=scheduler,
            storage_key=storage_key,
            mention_limit=mention_limit,
        )
        registry._load(document)
        return registry

    def export_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_document(), indent=indent)

    def import_json(self, text: str) -> None:
        """Replace the registry contents with a previously exported document."""

        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidRegistryDocumentError(f"Registry export is not valid JSON: {exc}") from exc
        self._load(document)
        self._changed()

    # Internals -----------------------------------------------------------------

    def _create(self, name: str, defaults: EntityDefaults, *, now: datetime) -> EntityRecord:
        match defaults.classification:
            case Classification.MINOR:
                return new_minor_record(
                    name, now=now, notes=defaults.notes, sentiment=defaults.sentiment
                )
            case Classification.MAJOR:
                record = new_major_record(name, now=now)
                if defaults.notes:
                    record.trackers.knowledge.append(defaults.notes)
                if defaults.sentiment:
                    record.trackers.relationships[PRIMARY_RELATIONSHIP] = Relationship(
                        sentiment=defaults.sentiment,
                        trust_level=derive_trust(defaults.sentiment),
                    )
                return record
            case _ as unreachable:
                assert_never(unreachable)

    def _load(self, document: object) -> None:
        if not isinstance(document, dict):
            raise InvalidRegistryDocumentError("Registry document must be an object")
        raw_entities = document.get("entities", {})  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
        if not isinstance(raw_entities, dict):
            raise InvalidRegistryDocumentError("Registry 'entities' must be an object")

        entities: dict[str, EntityRecord] = {}
        for key, raw in raw_entities.items():  # pyright: ignore[reportUnknownVariableType]
            try:
                record = parse_record(raw)
            except ValidationError as exc:
                raise InvalidRegistryDocumentError(
                    f"Entity {key!r} is not a valid record: {_first_error(exc)}"
                ) from exc
            if record.meta.id != key:
                raise InvalidRegistryDocumentError(
                    f"Entity stored under {key!r} carries id {record.meta.id!r}"
                )
            entities[key] = record

        raw_scene = document.get("sceneContext") or {}  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
        if not isinstance(raw_scene, dict):
            raise InvalidRegistryDocumentError("Registry 'sceneContext' must be an object")
        scene = SceneContext(
            current_scene=_optional_str(raw_scene.get("currentScene")),  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
            active_entity_ids=_id_list(raw_scene.get("activeEntityIds"), entities),  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
            recently_mentioned_ids=_id_list(
                raw_scene.get("recentlyMentionedIds"),  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
                entities,
            )[: self._mention_limit],
        )
        self._entities = entities
        self._scene = scene

    def _records_for(self, ids: Iterable[str]) -> list[EntityRecord]:
        return [self._entities[eid] for eid in ids if eid in self._entities]

    def _changed(self) -> None:
        if self._scheduler is not None:
            self._scheduler.schedule(self._storage_key, self.to_document)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _id_list(value: object, entities: Mapping[str, object]) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidRegistryDocumentError("Scene id lists must be arrays")
    return list(dict.fromkeys(eid for eid in value if isinstance(eid, str) and eid in entities))  # pyright: ignore[reportUnknownVariableType]


__all__ = [
    "DEFAULT_MENTION_LIMIT",
    "EntityDefaults",
    "EntityRegistry",
    "RegistryStats",
    "SceneContext",
    "TransitionIntent",
]
