from __future__ import annotations

import logging

import pytest

from entitystate.config import configure_logging, resolve_log_level


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", logging.DEBUG),
        (" WARNING ", logging.WARNING),
        ("", logging.INFO),
        ("loud", logging.INFO),
    ],
)
def test_level_comes_from_environment(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: int
) -> None:
    monkeypatch.setenv("ENTITYSTATE_LOG_LEVEL", raw)

    assert resolve_log_level() == expected


def test_sqlalchemy_engine_is_quiet_unless_debugging(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    engine_logger = logging.getLogger("sqlalchemy.engine")
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setattr(engine_logger, "level", engine_logger.level)

    configure_logging(level=logging.INFO)
    assert engine_logger.level == logging.WARNING

    configure_logging(level=logging.DEBUG)
    assert engine_logger.level == logging.NOTSET
