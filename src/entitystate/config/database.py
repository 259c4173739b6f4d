"""Where session documents are persisted."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import read_int_env
from .errors import ConfigurationError

DEFAULT_DATABASE_PATH: Final[Path] = Path("~/.entitystate/sessions.db")
DEFAULT_BUSY_TIMEOUT_S: Final[int] = 5


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """SQLAlchemy URI for the document table, plus SQLite lock handling.

    ``busy_timeout_s`` only reaches the driver for SQLite URIs; it bounds how
    long a save waits while another CLI invocation holds the write lock.
    """

    uri: str
    busy_timeout_s: int = DEFAULT_BUSY_TIMEOUT_S

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")

    def connect_args(self) -> dict[str, object]:
        return {"timeout": self.busy_timeout_s} if self.is_sqlite else {}


def sqlite_uri(path: Path) -> str:
    """URI for a SQLite file at ``path``, creating its directory."""

    resolved = path.expanduser().resolve()
    if resolved.exists() and resolved.is_dir():
        raise ConfigurationError(f"Database path {resolved} is a directory")
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{resolved}"


def get_database_config() -> DatabaseConfig:
    """Read ``ENTITYSTATE_DATABASE_URI`` or ``ENTITYSTATE_DATABASE_PATH``.

    An explicit URI wins; otherwise the documents live in a SQLite file, by
    default under the user's home directory.
    """

    busy_timeout = read_int_env(
        "ENTITYSTATE_DATABASE_TIMEOUT", DEFAULT_BUSY_TIMEOUT_S, minimum=1
    )
    uri = (os.getenv("ENTITYSTATE_DATABASE_URI") or "").strip()
    if not uri:
        raw_path = (os.getenv("ENTITYSTATE_DATABASE_PATH") or "").strip()
        uri = sqlite_uri(Path(raw_path) if raw_path else DEFAULT_DATABASE_PATH)
    return DatabaseConfig(uri=uri, busy_timeout_s=busy_timeout)
