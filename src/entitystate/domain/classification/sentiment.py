"""Map free-text sentiment to an approximate trust level.

This is a best-effort lexical heuristic, not a sentiment model: it looks for a
handful of keywords and falls back to neutral.
"""

from __future__ import annotations

from typing import Final

NEUTRAL_TRUST: Final[int] = 50

# checked in order; strongly negative first so "distrust" never reads as "trust"
_TRUST_BANDS: Final[tuple[tuple[int, tuple[str, ...]], ...]] = (
    (15, ("enemy", "hostile", "hate", "distrust")),
    (75, ("friend", "ally", "love", "trust")),
    (65, ("warm", "positive", "helpful", "kind")),
    (30, ("cold", "negative", "suspicious", "wary")),
)


def derive_trust(sentiment: str | None) -> int:
    if not sentiment:
        return NEUTRAL_TRUST
    lowered = sentiment.lower()
    for level, keywords in _TRUST_BANDS:
        if any(keyword in lowered for keyword in keywords):
            return level
    return NEUTRAL_TRUST
