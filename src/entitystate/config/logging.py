"""Logging setup for the ``entitystate`` command."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# chatty at INFO; only shown when the CLI runs with DEBUG
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def resolve_log_level(default: int = logging.INFO) -> int:
    """Level named by ``ENTITYSTATE_LOG_LEVEL`` (``debug``, ``WARNING``...), else ``default``."""

    raw = (os.getenv("ENTITYSTATE_LOG_LEVEL") or "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelNamesMapping().get(raw)
    return default if level is None else level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Send log records to stderr so command output on stdout stays parseable.

    ``level`` defaults to :func:`resolve_log_level`. Pass ``force=True`` when
    the verbosity changes after the first call.
    """

    effective = resolve_log_level() if level is None else level
    logging.basicConfig(
        level=effective,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.NOTSET if effective <= logging.DEBUG else logging.WARNING
        )
