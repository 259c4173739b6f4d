"""Batch processing of analyzer classification verdicts."""

from __future__ import annotations

from .actions import (
    ActionKind,
    ClassificationActions,
    ClassificationRecord,
    ExecutionError,
    ExecutionResult,
    PlannedCreate,
    PlannedTransition,
    PlannedUpdate,
)
from .execute import execute_actions
from .plan import plan_actions
from .processor import BatchProcessor

__all__ = [
    "ActionKind",
    "BatchProcessor",
    "ClassificationActions",
    "ClassificationRecord",
    "ExecutionError",
    "ExecutionResult",
    "PlannedCreate",
    "PlannedTransition",
    "PlannedUpdate",
    "execute_actions",
    "plan_actions",
]
