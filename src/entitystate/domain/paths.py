"""Path expressions addressing values inside nested JSON documents."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from entitystate.domain.errors import InvalidPathError

type Segment = str | int

_BRACKET_INDEX = re.compile(r"\[(\d+)\]")
_NUMERIC = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class Path:
    """Parsed, validated address: an ordered tuple of key or index segments."""

    segments: tuple[Segment, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise InvalidPathError("Path must contain at least one segment")

    def __str__(self) -> str:
        return ".".join(str(segment) for segment in self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def head(self) -> Segment:
        return self.segments[0]

    @property
    def leaf(self) -> Segment:
        return self.segments[-1]

    @property
    def parent(self) -> tuple[Segment, ...]:
        return self.segments[:-1]

    def startswith(self, *prefix: Segment) -> bool:
        return self.segments[: len(prefix)] == prefix

    def replace_prefix(self, old: Sequence[Segment], new: Sequence[Segment]) -> Path:
        """Return a copy with ``old`` swapped for ``new`` (``old`` must be a prefix)."""

        if not self.startswith(*old):
            raise InvalidPathError(f"{self} does not start with {'.'.join(map(str, old))}")
        return Path((*new, *self.segments[len(old) :]))


def parse_path(raw: str | Sequence[Segment] | Path) -> Path:
    """Parse ``raw`` into a :class:`Path`.

    ``a.b[2].c`` and ``a.b.2.c`` parse identically. Re-parsing a parsed path
    (or its segment list) yields the same path.
    """

    if isinstance(raw, Path):
        return raw
    if isinstance(raw, str):
        rewritten = _BRACKET_INDEX.sub(r".\1", raw)
        tokens: Sequence[object] = rewritten.split(".")
    elif isinstance(raw, Sequence):
        tokens = raw
    else:
        raise InvalidPathError(f"Invalid path type: {type(raw).__name__}")

    segments = tuple(
        segment for segment in (_coerce(token) for token in tokens) if segment != ""
    )
    if not segments:
        raise InvalidPathError(f"Empty path: {raw!r}")
    return Path(segments)


def _coerce(token: object) -> Segment:
    if isinstance(token, bool):
        raise InvalidPathError(f"Invalid path segment: {token!r}")
    if isinstance(token, int):
        if token < 0:
            raise InvalidPathError(f"Negative index in path: {token}")
        return token
    if isinstance(token, str):
        return int(token) if _NUMERIC.fullmatch(token) else token
    raise InvalidPathError(f"Invalid path segment: {token!r}")


__all__ = ["Path", "Segment", "parse_path"]
