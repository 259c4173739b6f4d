"""Tracking policy defaults: scoring thresholds, save debounce, scene bounds."""

from __future__ import annotations

from dataclasses import dataclass

from entitystate.domain.classification import ScoringPolicy

from .env import read_int_env

DEFAULT_PROMOTION_THRESHOLD = 3
DEFAULT_INACTIVITY_DAYS = 30
DEFAULT_RECENT_HOURS = 24
DEFAULT_SAVE_DELAY_MS = 500
DEFAULT_MENTION_LIMIT = 10


@dataclass(frozen=True, slots=True)
class TrackingConfig:
    promotion_threshold: int = DEFAULT_PROMOTION_THRESHOLD
    inactivity_days: int = DEFAULT_INACTIVITY_DAYS
    recent_hours: int = DEFAULT_RECENT_HOURS
    save_delay_ms: int = DEFAULT_SAVE_DELAY_MS
    mention_limit: int = DEFAULT_MENTION_LIMIT

    @property
    def save_delay_seconds(self) -> float:
        return self.save_delay_ms / 1000

    def scoring_policy(self) -> ScoringPolicy:
        return ScoringPolicy(
            promotion_threshold=self.promotion_threshold,
            inactivity_days=self.inactivity_days,
            recent_hours=self.recent_hours,
        )


def get_tracking_config() -> TrackingConfig:
    return TrackingConfig(
        promotion_threshold=read_int_env(
            "ENTITYSTATE_PROMOTION_THRESHOLD", DEFAULT_PROMOTION_THRESHOLD, minimum=1
        ),
        inactivity_days=read_int_env("ENTITYSTATE_INACTIVITY_DAYS", DEFAULT_INACTIVITY_DAYS),
        recent_hours=read_int_env("ENTITYSTATE_RECENT_HOURS", DEFAULT_RECENT_HOURS),
        save_delay_ms=read_int_env("ENTITYSTATE_SAVE_DELAY_MS", DEFAULT_SAVE_DELAY_MS),
        mention_limit=read_int_env(
            "ENTITYSTATE_MENTION_LIMIT", DEFAULT_MENTION_LIMIT, minimum=1
        ),
    )
