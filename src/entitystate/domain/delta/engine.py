"""Apply delta operations to nested JSON documents.

The engine mutates documents in place. Single operations raise the error
taxonomy from :mod:`entitystate.domain.errors`; batch and preview calls isolate
failures per operation and report them as values instead.
"""

from __future__ import annotations

import copy
import logging
import math
import re
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING

from entitystate.domain.clock import utcnow
from entitystate.domain.errors import EntityStateError, TypeMismatchError

from .operations import (
    MISSING,
    DeltaOperation,
    HistoryEntry,
    OperationKind,
    OperationPreview,
    OperationResult,
)

if TYPE_CHECKING:
    from entitystate.domain.clock import Clock
    from entitystate.domain.paths import Path, Segment

    from .operations import Document, JsonValue, Missing

log = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50

_NUMBER_PREFIX = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class DeltaEngine:
    """Path-addressed mutation engine with a bounded history of applied operations."""

    def __init__(
        self,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Clock = utcnow,
    ) -> None:
        self._history: deque[HistoryEntry] = deque(maxlen=history_limit)
        self._clock = clock

    @property
    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def apply(
        self,
        document: Document,
        operation: DeltaOperation | Mapping[str, object],
    ) -> OperationResult:
        """Apply one operation to ``document`` in place.

        Raises ``InvalidOperationError``/``InvalidPathError`` before touching the
        document when the operation is malformed, and ``TypeMismatchError`` when
        the path runs through a value of the wrong shape.
        """

        op = _coerce_operation(operation)
        old_value = copy.deepcopy(get_value(document, op.path))
        warnings = self._dispatch(document, op)
        self._history.append(
            HistoryEntry(timestamp=self._clock(), operation=op, old_value=old_value)
        )
        return OperationResult(operation=op, success=True, warnings=warnings)

    def apply_batch(
        self,
        document: Document,
        operations: Iterable[DeltaOperation | Mapping[str, object]],
    ) -> list[OperationResult]:
        """Apply operations in order; one failing entry never stops the rest."""

        results: list[OperationResult] = []
        for operation in operations:
            try:
                results.append(self.apply(document, operation))
            except EntityStateError as exc:
                log.warning("Operation rejected: %s (%s)", _describe(operation), exc)
                results.append(OperationResult(operation=operation, success=False, error=str(exc)))
        return results

    def preview(
        self,
        document: Document,
        operation: DeltaOperation | Mapping[str, object],
    ) -> OperationPreview:
        """Return the value at the operation's path before and after applying it."""

        return self._preview_on(copy.deepcopy(document), operation)

    def preview_batch(
        self,
        document: Document,
        operations: Iterable[DeltaOperation | Mapping[str, object]],
    ) -> list[OperationPreview]:
        # one private clone, so each preview sees the effect of the ones before it
        simulated = copy.deepcopy(document)
        return [self._preview_on(simulated, operation) for operation in operations]

    def _preview_on(
        self,
        simulated: Document,
        operation: DeltaOperation | Mapping[str, object],
    ) -> OperationPreview:
        try:
            op = _coerce_operation(operation)
        except EntityStateError as exc:
            return OperationPreview(
                path=_describe_path(operation),
                kind=_describe_kind(operation),
                error=str(exc),
            )

        old_value = copy.deepcopy(get_value(simulated, op.path))
        try:
            self._dispatch(simulated, op)
        except EntityStateError as exc:
            return OperationPreview(
                path=str(op.path), kind=op.kind.value, old_value=old_value, error=str(exc)
            )
        return OperationPreview(
            path=str(op.path),
            kind=op.kind.value,
            old_value=old_value,
            new_value=copy.deepcopy(get_value(simulated, op.path)),
        )

    def _dispatch(self, document: Document, op: DeltaOperation) -> list[str]:
        match op.kind:
            case OperationKind.SET:
                set_value(document, op.path, op.value)
                return []
            case OperationKind.ADD:
                _apply_add(document, op, dedup=True)
                return []
            case OperationKind.APPEND:
                _apply_add(document, op, dedup=False)
                return []
            case OperationKind.REMOVE:
                return _apply_remove(document, op)
            case OperationKind.INCREMENT:
                return _apply_increment(document, op)
            case OperationKind.DELETE:
                delete_value(document, op.path)
                return []


# Path access -------------------------------------------------------------------


def get_value(document: Document, path: Path | tuple[Segment, ...]) -> JsonValue | Missing:
    """Resolve ``path``; ``MISSING`` when any segment does not resolve."""

    segments = path if isinstance(path, tuple) else path.segments
    current: JsonValue = document
    for segment in segments:
        child = _child(current, segment)
        if child is MISSING:
            return MISSING
        current = child
    return current


def set_value(document: Document, path: Path, value: JsonValue | Missing) -> None:
    """Replace the leaf at ``path``, creating missing intermediate containers.

    A missing container becomes a list when the segment after it is an index,
    otherwise an object.
    """

    if value is MISSING:
        raise TypeMismatchError(f"No value to set at {path}")
    current: JsonValue = document
    segments = path.segments
    for segment, next_segment in zip(segments, segments[1:], strict=False):
        child = _child(current, segment)
        if child is MISSING or child is None:
            child = [] if isinstance(next_segment, int) else {}
            _assign(current, segment, child, path)
        elif not isinstance(child, dict | list):
            raise TypeMismatchError(
                f"Cannot descend into {type(child).__name__} at segment {segment!r} of {path}"
            )
        current = child
    _assign(current, path.leaf, value, path)


def delete_value(document: Document, path: Path) -> bool:
    """Remove the key or list index at ``path``; ``False`` if it does not resolve."""

    parent = get_value(document, path.parent)
    leaf = path.leaf
    if isinstance(parent, dict):
        key = str(leaf)
        if key in parent:
            del parent[key]
            return True
    elif isinstance(parent, list) and isinstance(leaf, int) and leaf < len(parent):
        del parent[leaf]
        return True
    return False


def _child(container: JsonValue, segment: Segment) -> JsonValue | Missing:
    if isinstance(container, dict):
        return container.get(str(segment), MISSING)
    if isinstance(container, list) and isinstance(segment, int):
        return container[segment] if segment < len(container) else MISSING
    return MISSING


def _assign(container: JsonValue, segment: Segment, value: JsonValue, path: Path) -> None:
    if isinstance(container, dict):
        container[str(segment)] = value
        return
    if isinstance(container, list):
        if not isinstance(segment, int):
            raise TypeMismatchError(f"Key {segment!r} addresses a list in {path}")
        if segment < len(container):
            container[segment] = value
        else:
            container.extend([None] * (segment - len(container)))
            container.append(value)
        return
    raise TypeMismatchError(f"Cannot assign into {type(container).__name__} in {path}")


# Operation kinds ---------------------------------------------------------------


def _apply_add(document: Document, op: DeltaOperation, *, dedup: bool) -> None:
    current = get_value(document, op.path)
    value = op.value
    if value is MISSING:
        raise TypeMismatchError(f"No value to add at {op.path}")
    if current is MISSING or current is None:
        set_value(document, op.path, [value])
    elif isinstance(current, list):
        if dedup and is_primitive(value) and any(strict_equal(item, value) for item in current):
            return
        current.append(value)
    else:
        set_value(document, op.path, [current, value])


def _apply_remove(document: Document, op: DeltaOperation) -> list[str]:
    current = get_value(document, op.path)
    if not isinstance(current, list):
        message = f"Remove: path is not an array: {op.path}"
        log.warning(message)
        return [message]

    value = op.value
    if isinstance(value, dict):
        index = _find_index(current, lambda item: _subset_match(item, value))
    elif isinstance(value, list):
        message = f"Remove: cannot match a list value at {op.path}"
        log.warning(message)
        return [message]
    else:
        index = _find_index(current, lambda item: strict_equal(item, value))
    if index is not None:
        del current[index]
    return []


def _apply_increment(document: Document, op: DeltaOperation) -> list[str]:
    increment = parse_number(op.value)
    if increment is None:
        message = f"Invalid increment value: {op.value!r}, treating as 0"
        log.warning(message)
        return [message]
    current = get_value(document, op.path)
    current_number = current if is_number(current) else 0
    try:
        total = current_number + increment  # pyright: ignore[reportOperatorIssue]
    except OverflowError:
        total = math.inf
    if isinstance(total, float) and not math.isfinite(total):
        message = f"Increment at {op.path} overflows a float, leaving it unchanged"
        log.warning(message)
        return [message]
    set_value(document, op.path, total)
    return []


# Value helpers -----------------------------------------------------------------


def is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def is_primitive(value: object) -> bool:
    """Strings and numbers; the values Add deduplicates."""

    return isinstance(value, str) or is_number(value)


def strict_equal(left: object, right: object) -> bool:
    """Equality that never conflates booleans, numbers and strings."""

    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def parse_number(value: object) -> int | float | None:
    """Parse an increment amount; ``None`` when it is not numeric.

    Strings are read like ``parseFloat``: the leading numeric part counts, and
    ``.5`` / ``-.5`` are read as ``0.5`` / ``-0.5``. Amounts that do not fit a
    finite float are rejected.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    normalized = value.strip()
    if normalized.startswith("."):
        normalized = "0" + normalized
    elif normalized.startswith("-."):
        normalized = "-0" + normalized[1:]
    match = _NUMBER_PREFIX.match(normalized)
    if match is None:
        return None
    text = match.group()
    number = float(text)
    if not math.isfinite(number):
        return None
    if any(marker in text for marker in ".eE"):
        return number
    return int(text)


def _subset_match(item: object, pattern: Mapping[str, object]) -> bool:
    if not isinstance(item, dict):
        return False
    return all(key in item and strict_equal(item[key], val) for key, val in pattern.items())


def _find_index(items: list[JsonValue], predicate: Callable[[JsonValue], bool]) -> int | None:
    for index, item in enumerate(items):
        if predicate(item):
            return index
    return None


def _coerce_operation(operation: DeltaOperation | Mapping[str, object]) -> DeltaOperation:
    if isinstance(operation, DeltaOperation):
        return operation
    return DeltaOperation.from_mapping(operation)


def _describe(operation: object) -> str:
    if isinstance(operation, DeltaOperation):
        return f"{operation.kind} {operation.path}"
    return repr(operation)


def _describe_path(operation: object) -> str:
    if isinstance(operation, Mapping):
        return str(operation.get("path", ""))  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
    return ""


def _describe_kind(operation: object) -> str | None:
    if isinstance(operation, Mapping):
        raw = operation.get("op", operation.get("kind"))  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
        return raw if isinstance(raw, str) else None
    return None


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DeltaEngine",
    "delete_value",
    "get_value",
    "is_number",
    "is_primitive",
    "parse_number",
    "set_value",
    "strict_equal",
]
