"""Rule-based promotion/demotion scoring.

Only consulted when an analysis result carries no explicit recommendation.
Each satisfied rule adds points; the entity changes tier when the total meets
the policy cutoff.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, timedelta
from typing import TYPE_CHECKING, Final, assert_never

from entitystate.domain.model import MajorRecord, MinorRecord

if TYPE_CHECKING:
    from datetime import datetime

    from entitystate.domain.model import EntityRecord

_BLAND_SENTIMENTS: Final[frozenset[str]] = frozenset({"neutral", "unknown"})
_DETAILED_NOTES_LENGTH: Final[int] = 50
_FEW_APPEARANCES: Final[int] = 3
_SPARSE_SECTIONS: Final[int] = 3


@dataclass(frozen=True, slots=True)
class ScoringPolicy:
    promotion_threshold: int = 3
    inactivity_days: int = 30
    recent_hours: int = 24
    cutoff: int = 50


@dataclass(frozen=True, slots=True)
class Evaluation:
    should_change: bool
    score: int
    factors: tuple[str, ...] = ()
    reason: str = ""


def evaluate_promotion(
    record: EntityRecord,
    policy: ScoringPolicy | None = None,
    *,
    now: datetime,
) -> Evaluation:
    policy = policy or ScoringPolicy()
    match record:
        case MajorRecord():
            return Evaluation(should_change=False, score=0, reason="already major")
        case MinorRecord():
            pass
        case _ as unreachable:
            assert_never(unreachable)

    meta = record.meta
    data = record.data
    points: list[tuple[int, str]] = []
    if meta.appearance_count >= policy.promotion_threshold:
        points.append((30, f"appeared {meta.appearance_count} times"))
    if len(data.notes) > _DETAILED_NOTES_LENGTH:
        points.append((20, "detailed notes"))
    if data.sentiment and data.sentiment.strip().lower() not in _BLAND_SENTIMENTS:
        points.append((15, f"sentiment {data.sentiment!r}"))
    if _age(now, meta.last_seen) <= timedelta(hours=policy.recent_hours):
        points.append((15, "seen recently"))
    if meta.user_pinned:
        points.append((30, "pinned by user"))
    return _evaluation("Promotion", points, policy)


def evaluate_demotion(
    record: EntityRecord,
    policy: ScoringPolicy | None = None,
    *,
    now: datetime,
) -> Evaluation:
    policy = policy or ScoringPolicy()
    match record:
        case MinorRecord():
            return Evaluation(should_change=False, score=0, reason="already minor")
        case MajorRecord():
            pass
        case _ as unreachable:
            assert_never(unreachable)

    meta = record.meta
    if meta.user_pinned:
        return Evaluation(should_change=False, score=0, reason="pinned by user")

    trackers = record.trackers
    points: list[tuple[int, str]] = []
    if _age(now, meta.last_seen) > timedelta(days=policy.inactivity_days):
        points.append((40, f"inactive for more than {policy.inactivity_days} days"))
    if meta.appearance_count < _FEW_APPEARANCES:
        points.append((20, f"only {meta.appearance_count} appearances"))
    empty_sections = sum(
        (
            not trackers.knowledge,
            not trackers.relationships,
            not trackers.personality.traits,
            not (trackers.appearance.clothing or trackers.appearance.physical),
        )
    )
    if empty_sections >= _SPARSE_SECTIONS:
        points.append((20, "sparse record"))
    role = record.narrative_role
    if not (role.archetype or role.story_function):
        points.append((15, "no narrative role"))
    return _evaluation("Demotion", points, policy)


def _evaluation(label: str, points: list[tuple[int, str]], policy: ScoringPolicy) -> Evaluation:
    score = sum(value for value, _ in points)
    factors = tuple(factor for _, factor in points)
    reason = f"{label} score {score}"
    if factors:
        reason += ": " + ", ".join(factors)
    return Evaluation(
        should_change=score >= policy.cutoff, score=score, factors=factors, reason=reason
    )


def _age(now: datetime, then: datetime) -> timedelta:
    if then.tzinfo is None:
        then = then.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now - then


__all__ = ["Evaluation", "ScoringPolicy", "evaluate_demotion", "evaluate_promotion"]
