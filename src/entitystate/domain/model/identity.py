"""Deterministic entity identity."""

from __future__ import annotations

import re

from entitystate.domain.errors import UnresolvableEntityError

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_]")


def derive_entity_id(name: str) -> str:
    """Map a display name to its entity id.

    ``"Tom the Barkeep"`` and ``"tom  the barkeep!"`` both become
    ``"tom_the_barkeep"``.
    """

    entity_id = _DISALLOWED.sub("", _WHITESPACE.sub("_", name.strip().lower()))
    if not entity_id.strip("_"):
        raise UnresolvableEntityError(f"Cannot derive an entity id from name {name!r}")
    return entity_id
