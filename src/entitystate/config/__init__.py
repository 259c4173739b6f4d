"""Application configuration helpers."""

from __future__ import annotations

from .database import DatabaseConfig, get_database_config, sqlite_uri
from .env import read_int_env
from .errors import ConfigurationError
from .logging import configure_logging, resolve_log_level
from .tracking import TrackingConfig, get_tracking_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "TrackingConfig",
    "configure_logging",
    "get_database_config",
    "get_tracking_config",
    "read_int_env",
    "resolve_log_level",
    "sqlite_uri",
]
