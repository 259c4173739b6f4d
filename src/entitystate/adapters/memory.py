"""In-process document store, used for tests and ephemeral sessions."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from entitystate.domain.delta import Document


class InMemoryDocumentStore:
    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        self._documents: dict[str, Document] = copy.deepcopy(documents or {})
        self.save_count = 0

    def load(self, key: str) -> Document | None:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    def save(self, key: str, document: Document) -> None:
        self._documents[key] = copy.deepcopy(document)
        self.save_count += 1

    def keys(self) -> list[str]:
        return sorted(self._documents)
