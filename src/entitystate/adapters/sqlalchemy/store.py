"""Document store backed by a single SQLAlchemy table."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from entitystate.domain.clock import utcnow
from entitystate.domain.ports import StorageError

from .mappings import create_all_tables, document_table

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

    from entitystate.domain.clock import Clock
    from entitystate.domain.delta import Document

log = logging.getLogger(__name__)


class SqlAlchemyDocumentStore:
    def __init__(self, engine: Engine, *, clock: Clock = utcnow) -> None:
        self._engine = engine
        self._clock = clock

    @property
    def engine(self) -> Engine:
        return self._engine

    def load(self, key: str) -> Document | None:
        statement = select(document_table.c.payload).where(document_table.c.key == key)
        try:
            with self._engine.connect() as connection:
                payload = connection.execute(statement).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load {key}: {exc}") from exc
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise StorageError(f"Stored document {key} is not an object")
        return copy.deepcopy(payload)  # pyright: ignore[reportUnknownArgumentType]

    def save(self, key: str, document: Document) -> None:
        values = {"payload": document, "updated_at": self._clock()}
        try:
            with self._engine.begin() as connection:
                result = connection.execute(
                    update(document_table).where(document_table.c.key == key).values(**values)
                )
                if result.rowcount == 0:
                    connection.execute(insert(document_table).values(key=key, **values))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to save {key}: {exc}") from exc
        log.debug("Stored document %s", key)

    def keys(self) -> list[str]:
        statement = select(document_table.c.key).order_by(document_table.c.key)
        try:
            with self._engine.connect() as connection:
                return list(connection.execute(statement).scalars())
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to list documents: {exc}") from exc

    def dispose(self) -> None:
        self._engine.dispose()


def create_document_store(
    database_uri: str,
    *,
    clock: Clock = utcnow,
    connect_args: Mapping[str, object] | None = None,
) -> SqlAlchemyDocumentStore:
    """Build an engine for ``database_uri`` and make sure the table exists."""

    engine = create_engine(database_uri, connect_args=dict(connect_args or {}))
    create_all_tables(engine)
    return SqlAlchemyDocumentStore(engine, clock=clock)
