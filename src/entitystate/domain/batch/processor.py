"""Batch processor: planning and execution bundled with a policy and clock."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from entitystate.domain.classification import ScoringPolicy
from entitystate.domain.clock import utcnow

from .execute import execute_actions
from .plan import plan_actions

if TYPE_CHECKING:
    from collections.abc import Iterable

    from entitystate.domain.clock import Clock
    from entitystate.domain.registry import EntityRegistry

    from .actions import ClassificationActions, ClassificationRecord, ExecutionResult


@dataclass(slots=True)
class BatchProcessor:
    policy: ScoringPolicy = field(default_factory=ScoringPolicy)
    clock: Clock = utcnow

    def process(
        self,
        registry: EntityRegistry,
        records: Iterable[ClassificationRecord],
    ) -> ClassificationActions:
        return plan_actions(registry, records, policy=self.policy, now=self.clock())

    def execute(self, registry: EntityRegistry, actions: ClassificationActions) -> ExecutionResult:
        return execute_actions(registry, actions, now=self.clock())

    def run(
        self,
        registry: EntityRegistry,
        records: Iterable[ClassificationRecord],
    ) -> tuple[ClassificationActions, ExecutionResult]:
        actions = self.process(registry, records)
        return actions, self.execute(registry, actions)
