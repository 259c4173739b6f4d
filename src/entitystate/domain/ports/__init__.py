"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import DocumentStore, SaveScheduler, StorageError

__all__ = ["DocumentStore", "SaveScheduler", "StorageError"]
