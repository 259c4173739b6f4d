"""Delta operation value types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import TYPE_CHECKING, Final, Literal

from entitystate.domain.errors import InvalidOperationError
from entitystate.domain.paths import Path, Segment, parse_path

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

type JsonValue = None | bool | int | float | str | list[JsonValue] | dict[str, JsonValue]
type Document = dict[str, JsonValue]


class _Missing(Enum):
    MISSING = "missing"

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing.MISSING
type Missing = Literal[_Missing.MISSING]


class OperationKind(StrEnum):
    SET = "set"
    ADD = "add"
    REMOVE = "remove"
    APPEND = "append"
    INCREMENT = "increment"
    DELETE = "delete"

    @classmethod
    def parse(cls, raw: object) -> OperationKind:
        if isinstance(raw, OperationKind):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidOperationError("Missing operation type (op)")
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise InvalidOperationError(f"Unknown operation type: {raw}") from None


@dataclass(frozen=True, slots=True)
class DeltaOperation:
    """One typed instruction against one path of a document."""

    kind: OperationKind
    path: Path
    value: JsonValue | Missing = MISSING

    def __post_init__(self) -> None:
        if self.kind is not OperationKind.DELETE and self.value is MISSING:
            raise InvalidOperationError(f"Operation {self.kind} on {self.path} requires a value")

    @property
    def has_value(self) -> bool:
        return self.value is not MISSING

    @classmethod
    def create(
        cls,
        kind: OperationKind | str,
        path: str | Sequence[Segment] | Path,
        value: JsonValue | Missing = MISSING,
    ) -> DeltaOperation:
        return cls(kind=OperationKind.parse(kind), path=parse_path(path), value=value)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> DeltaOperation:
        """Validate a wire-format operation (``{"op", "path", "value"}``)."""

        if not isinstance(raw, Mapping):
            raise InvalidOperationError(f"Operation must be an object, got {type(raw).__name__}")
        kind = OperationKind.parse(raw.get("op", raw.get("kind")))
        path = raw.get("path")
        if path is None or path == "" or path == []:
            raise InvalidOperationError("Missing path")
        value = raw["value"] if "value" in raw else MISSING
        return cls.create(kind, path, value)  # pyright: ignore[reportArgumentType]

    def to_mapping(self) -> dict[str, JsonValue]:
        payload: dict[str, JsonValue] = {"op": self.kind.value, "path": str(self.path)}
        if self.value is not MISSING:
            payload["value"] = self.value
        return payload


@dataclass(slots=True)
class OperationResult:
    """Outcome of applying one operation (or one raw entry of a batch)."""

    operation: DeltaOperation | Mapping[str, object]
    success: bool
    error: str | None = None
    warnings: list[str] = field(default_factory=list[str])


@dataclass(slots=True, kw_only=True)
class OperationPreview:
    """Old and new value at an operation's path, computed without mutation."""

    path: str
    kind: str | None
    old_value: JsonValue | Missing = MISSING
    new_value: JsonValue | Missing = MISSING
    error: str | None = None


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    timestamp: datetime
    operation: DeltaOperation
    old_value: JsonValue | Missing


__all__ = [
    "MISSING",
    "DeltaOperation",
    "Document",
    "HistoryEntry",
    "JsonValue",
    "Missing",
    "OperationKind",
    "OperationPreview",
    "OperationResult",
]
