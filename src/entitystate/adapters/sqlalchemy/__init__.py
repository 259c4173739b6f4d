"""SQLAlchemy adapter package for entitystate."""

from __future__ import annotations

from .mappings import create_all_tables, document_table, metadata
from .store import SqlAlchemyDocumentStore, create_document_store

__all__ = [
    "SqlAlchemyDocumentStore",
    "create_all_tables",
    "create_document_store",
    "document_table",
    "metadata",
]
