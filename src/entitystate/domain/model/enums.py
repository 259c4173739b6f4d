"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Classification(StrEnum):
    """Tracking tier of a secondary entity; selects its record shape."""

    MINOR = "minor"
    MAJOR = "major"

    @classmethod
    def parse(cls, raw: object) -> Classification:
        if isinstance(raw, Classification):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown classification: {raw!r}")
