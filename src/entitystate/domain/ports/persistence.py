"""Ports for persisting JSON documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from entitystate.domain.delta import Document


class StorageError(RuntimeError):
    """Raised by a document store when a load or save fails."""


@runtime_checkable
class DocumentStore(Protocol):
    """Key/value store holding one JSON document per key."""

    def load(self, key: str) -> Document | None: ...

    def save(self, key: str, document: Document) -> None: ...


@runtime_checkable
class SaveScheduler(Protocol):
    """Accepts "this key changed" notifications; writes happen later."""

    def schedule(self, key: str, snapshot: Callable[[], Document]) -> None: ...
