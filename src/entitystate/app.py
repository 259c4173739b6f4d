"""Application orchestration: one tracking session over a document store."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, assert_never

from entitystate.adapters.analyzer import parse_analysis_text, translate_analysis
from entitystate.common.coalescing import CoalescingWriter
from entitystate.config import TrackingConfig
from entitystate.domain.batch import BatchProcessor, ExecutionResult
from entitystate.domain.classification import (
    demote_entity,
    evaluate_demotion,
    evaluate_promotion,
    promote_entity,
)
from entitystate.domain.clock import utcnow
from entitystate.domain.delta import DeltaEngine
from entitystate.domain.errors import InvalidRegistryDocumentError
from entitystate.domain.model import (
    MajorRecord,
    MinorRecord,
    is_primary_document,
    new_primary_document,
    touch_primary_document,
)
from entitystate.domain.registry import EntityRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from entitystate.adapters.analyzer import AnalysisResult, RejectedOperation
    from entitystate.domain.classification import Evaluation
    from entitystate.domain.clock import Clock
    from entitystate.domain.delta import (
        DeltaOperation,
        Document,
        OperationPreview,
        OperationResult,
    )
    from entitystate.domain.model import EntityRecord
    from entitystate.domain.ports import DocumentStore

log = getLogger(__name__)

MonotonicClock = Callable[[], float]


@dataclass(slots=True)
class AnalysisOutcome:
    primary_results: list[OperationResult] = field(default_factory=list["OperationResult"])
    classification: ExecutionResult = field(default_factory=ExecutionResult)
    scene: list[str] = field(default_factory=list[str])
    rejected: list[RejectedOperation] = field(default_factory=list["RejectedOperation"])


class TrackingSession:
    """Registry, primary document and persistence for one session key."""

    def __init__(
        self,
        session_key: str,
        *,
        store: DocumentStore,
        config: TrackingConfig | None = None,
        clock: Clock = utcnow,
        monotonic: MonotonicClock = time.monotonic,
        primary_name: str = "",
    ) -> None:
        self.session_key = session_key
        self.config = config or TrackingConfig()
        self._store = store
        self._clock = clock
        self._primary_name = primary_name
        self.writer = CoalescingWriter(
            store, quiet_period=self.config.save_delay_seconds, clock=monotonic
        )
        self.engine = DeltaEngine(clock=clock)
        self.processor = BatchProcessor(policy=self.config.scoring_policy(), clock=clock)
        self.registry = self._new_registry()
        self.primary: Document = new_primary_document(primary_name, now=clock())

    @property
    def entities_key(self) -> str:
        return f"{self.session_key}:entities"

    @property
    def primary_key(self) -> str:
        return f"{self.session_key}:primary"

    # Lifecycle -----------------------------------------------------------------

    def reload(self) -> None:
        """Replace in-memory state with what the store holds, creating it if absent."""

        self.writer.discard(self.entities_key)
        self.writer.discard(self.primary_key)

        stored_registry = self._store.load(self.entities_key)
        if stored_registry is None:
            self.registry = self._new_registry()
            log.info("Created registry for session %s", self.session_key)
            self._schedule_registry()
        else:
            self.registry = EntityRegistry.from_document(
                stored_registry,
                engine=self.engine,
                clock=self._clock,
                scheduler=self.writer,
                storage_key=self.entities_key,
                mention_limit=self.config.mention_limit,
            )

        stored_primary = self._store.load(self.primary_key)
        if stored_primary is None:
            self.primary = new_primary_document(self._primary_name, now=self._clock())
            self._schedule_primary()
        elif is_primary_document(stored_primary):
            self.primary = stored_primary
        else:
            raise InvalidRegistryDocumentError(
                f"Stored primary document for {self.session_key} is malformed"
            )

    def reset(self) -> None:
        """Start over with an empty registry and a fresh primary document."""

        self.registry = self._new_registry()
        self.primary = new_primary_document(self._primary_name, now=self._clock())
        self.engine.clear_history()
        self._schedule_registry()
        self._schedule_primary()
        log.info("Reset session %s", self.session_key)

    def flush(self, *, strict: bool = False) -> list[str]:
        return self.writer.flush(strict=strict)

    def tick(self) -> list[str]:
        return self.writer.tick()

    # Analysis ------------------------------------------------------------------

    def apply_analysis(self, result: AnalysisResult) -> AnalysisOutcome:
        """Apply primary operations, classification verdicts and scene changes."""

        outcome = AnalysisOutcome(rejected=list(result.rejected))
        outcome.primary_results = self.engine.apply_batch(self.primary, result.operations)
        if any(item.success for item in outcome.primary_results):
            touch_primary_document(self.primary, now=self._clock())
            self._schedule_primary()

        _, outcome.classification = self.processor.run(self.registry, result.classifications)

        if result.scene_entities:
            active_ids = [
                record.meta.id
                for record in (self.registry.get_by_name(name) for name in result.scene_entities)
                if record is not None
            ]
            self.registry.update_scene(active_ids=active_ids)
        outcome.scene = list(self.registry.scene.active_entity_ids)

        # reversed so the first relevant entity ends up most recent
        for item in reversed(result.classifications):
            if not item.scene_relevant:
                continue
            record = self.registry.get_by_name(item.name)
            if record is not None:
                self.registry.mark_mentioned(record.meta.id, sighting=False)
        return outcome

    def apply_analysis_text(self, text: str) -> AnalysisOutcome:
        return self.apply_analysis(translate_analysis(parse_analysis_text(text)))

    def preview_primary(
        self,
        operations: Iterable[DeltaOperation | Mapping[str, object]],
    ) -> list[OperationPreview]:
        return self.engine.preview_batch(self.primary, operations)

    # Manual overrides ----------------------------------------------------------

    def promote(self, entity_id: str, reason: str | None = None) -> EntityRecord:
        if reason:
            return promote_entity(self.registry, entity_id, reason)
        return promote_entity(self.registry, entity_id)

    def demote(self, entity_id: str, reason: str | None = None) -> EntityRecord:
        if reason:
            return demote_entity(self.registry, entity_id, reason)
        return demote_entity(self.registry, entity_id)

    def toggle_pin(self, entity_id: str) -> bool:
        return self.registry.toggle_pin(entity_id)

    def evaluate(self) -> list[tuple[EntityRecord, Evaluation]]:
        """Score every entity with the rule-based policy, without changing anything."""

        now = self._clock()
        policy = self.processor.policy
        evaluations: list[tuple[EntityRecord, Evaluation]] = []
        for record in self.registry.entities():
            match record:
                case MinorRecord():
                    evaluation = evaluate_promotion(record, policy, now=now)
                case MajorRecord():
                    evaluation = evaluate_demotion(record, policy, now=now)
                case _ as unreachable:
                    assert_never(unreachable)
            evaluations.append((record, evaluation))
        return evaluations

    # Internals -----------------------------------------------------------------

    def _new_registry(self) -> EntityRegistry:
        return EntityRegistry(
            engine=self.engine,
            clock=self._clock,
            scheduler=self.writer,
            storage_key=self.entities_key,
            mention_limit=self.config.mention_limit,
        )

    def _schedule_registry(self) -> None:
        self.writer.schedule(self.entities_key, self.registry.to_document)

    def _schedule_primary(self) -> None:
        self.writer.schedule(self.primary_key, lambda: self.primary)


def open_session(
    session_key: str,
    *,
    store: DocumentStore,
    config: TrackingConfig | None = None,
    clock: Clock = utcnow,
    monotonic: MonotonicClock = time.monotonic,
    primary_name: str = "",
) -> TrackingSession:
    """Open ``session_key``, loading stored documents or creating them on first use."""

    session = TrackingSession(
        session_key,
        store=store,
        config=config,
        clock=clock,
        monotonic=monotonic,
        primary_name=primary_name,
    )
    session.reload()
    log.info(
        "Opened session %s: %d entities",
        session_key,
        len(session.registry),
    )
    return session
