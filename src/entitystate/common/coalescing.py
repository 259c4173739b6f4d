"""Debounced, whole-document persistence.

Each storage key is a two-state machine: ``IDLE`` until something schedules
it, then ``PENDING`` with a deadline that every further schedule pushes back.
When the deadline passes, :meth:`CoalescingWriter.tick` writes the document
returned by the latest snapshot callable, so the newest in-memory state wins
and superseded intermediate states are never written.

Time is injected: production code passes ``time.monotonic`` and drives
``tick`` from its loop (or calls ``flush`` on exit); tests pass a virtual
clock.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from entitystate.domain.ports import StorageError

if TYPE_CHECKING:
    from collections.abc import Callable

    from entitystate.domain.delta import Document
    from entitystate.domain.ports import DocumentStore

log = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 0.5


class WriteState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass(slots=True)
class _PendingWrite:
    deadline: float
    snapshot: Callable[[], Document]


class CoalescingWriter:
    def __init__(
        self,
        store: DocumentStore,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if quiet_period < 0:
            raise ValueError("quiet_period must not be negative")
        self._store = store
        self._quiet_period = quiet_period
        self._clock = clock
        self._pending: dict[str, _PendingWrite] = {}

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    def state(self, key: str) -> WriteState:
        return WriteState.PENDING if key in self._pending else WriteState.IDLE

    def deadline(self, key: str) -> float | None:
        pending = self._pending.get(key)
        return pending.deadline if pending is not None else None

    def schedule(self, key: str, snapshot: Callable[[], Document]) -> None:
        """Mark ``key`` dirty and restart its quiet period."""

        self._pending[key] = _PendingWrite(
            deadline=self._clock() + self._quiet_period, snapshot=snapshot
        )

    def tick(self) -> list[str]:
        """Write every key whose quiet period has elapsed; return the written keys."""

        now = self._clock()
        due = [key for key, pending in self._pending.items() if pending.deadline <= now]
        return [key for key in due if self._write(key)]

    def flush(self, *, strict: bool = False) -> list[str]:
        """Write every pending key now, regardless of deadlines.

        With ``strict=True`` a failed write raises ``StorageError`` once every
        key has been attempted; failed keys stay pending either way.
        """

        keys = list(self._pending)
        written = [key for key in keys if self._write(key)]
        if strict and len(written) != len(keys):
            failed = ", ".join(key for key in keys if key not in written)
            raise StorageError(f"Failed to persist: {failed}")
        return written

    def discard(self, key: str) -> None:
        self._pending.pop(key, None)

    def _write(self, key: str) -> bool:
        pending = self._pending.pop(key)
        try:
            self._store.save(key, pending.snapshot())
        except StorageError:
            log.exception("Saving %s failed; will retry", key)
            self._pending.setdefault(
                key,
                _PendingWrite(
                    deadline=self._clock() + self._quiet_period, snapshot=pending.snapshot
                ),
            )
            return False
        log.debug("Saved %s", key)
        return True


__all__ = ["DEFAULT_QUIET_PERIOD", "CoalescingWriter", "WriteState"]
