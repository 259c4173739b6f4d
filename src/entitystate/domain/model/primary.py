"""The primary-entity document: the tracked main character's state.

Always comprehensive-shaped and never classified; the delta engine mutates the
plain JSON tree directly.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from datetime import datetime

    from entitystate.domain.delta import Document

PRIMARY_DOCUMENT_VERSION: Final[str] = "1.0"

_PRIMARY_TEMPLATE: Final[dict[str, object]] = {
    "meta": {
        "version": PRIMARY_DOCUMENT_VERSION,
        "name": "",
        "lastUpdated": "",
    },
    "trackers": {
        "status": {
            "health": "Healthy",
            "energy": "Normal",
            "mood": "Neutral",
            "conditions": [],
        },
        "appearance": {"clothing": "", "physical": ""},
        "inventory": {
            "equipped": {"mainHand": "Empty", "offHand": "Empty"},
            "bag": [],
        },
        "relationships": {},
        "knowledge": [],
    },
    "timeline": [],
    "plotThreads": {"active": [], "resolved": []},
}


def new_primary_document(name: str, *, now: datetime) -> Document:
    document: Document = copy.deepcopy(_PRIMARY_TEMPLATE)  # pyright: ignore[reportAssignmentType]
    meta = document["meta"]
    assert isinstance(meta, dict)
    meta["name"] = name
    meta["lastUpdated"] = now.isoformat()
    return document


def touch_primary_document(document: Document, *, now: datetime) -> None:
    meta = document.setdefault("meta", {})
    if isinstance(meta, dict):
        meta["lastUpdated"] = now.isoformat()


def is_primary_document(document: object) -> bool:
    return (
        isinstance(document, dict)
        and isinstance(document.get("meta"), dict)  # pyright: ignore[reportUnknownMemberType]
        and isinstance(document.get("trackers"), dict)  # pyright: ignore[reportUnknownMemberType]
    )
