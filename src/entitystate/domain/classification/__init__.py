"""Classification decisions and the migrations between record shapes."""

from __future__ import annotations

from .migrate import demote, promote, transition
from .overrides import demote_entity, promote_entity, toggle_pin
from .remap import RemapResult, remap_operations
from .scoring import Evaluation, ScoringPolicy, evaluate_demotion, evaluate_promotion
from .sentiment import derive_trust

__all__ = [
    "Evaluation",
    "RemapResult",
    "ScoringPolicy",
    "demote",
    "demote_entity",
    "derive_trust",
    "evaluate_demotion",
    "evaluate_promotion",
    "promote",
    "promote_entity",
    "remap_operations",
    "toggle_pin",
    "transition",
]
