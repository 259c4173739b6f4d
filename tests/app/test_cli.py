from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from entitystate.adapters.memory import InMemoryDocumentStore
from entitystate.ui import cli

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> InMemoryDocumentStore:
    shared = InMemoryDocumentStore()
    monkeypatch.setattr(cli, "_build_store", lambda: shared)
    return shared


@pytest.fixture
def analysis_file(tmp_path: Path) -> Path:
    path = tmp_path / "analysis.json"
    path.write_text(
        json.dumps(
            {
                "operations": [{"op": "set", "path": "trackers.status.mood", "value": "Wary"}],
                "classifications": [{"name": "Tom the Barkeep", "reasoning": "Runs the tavern"}],
            }
        ),
        encoding="utf-8",
    )
    return path


def test_apply_persists_session(store: InMemoryDocumentStore, analysis_file: Path) -> None:
    cli.main(["apply", str(analysis_file), "--session", "t1"])

    entities = store.load("t1:entities")
    assert entities is not None
    assert "tom_the_barkeep" in entities["entities"]  # pyright: ignore[reportOperatorIssue]
    primary = store.load("t1:primary")
    assert primary is not None
    assert primary["trackers"]["status"]["mood"] == "Wary"  # pyright: ignore[reportIndexIssue, reportCallIssue, reportArgumentType]


def test_dry_run_prints_preview_and_leaves_primary(
    store: InMemoryDocumentStore, analysis_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["apply", str(analysis_file), "--dry-run", "--session", "t2"])

    out = capsys.readouterr().out
    assert 'set trackers.status.mood: "Neutral" -> "Wary"' in out
    primary = store.load("t2:primary")
    assert primary is not None
    assert primary["trackers"]["status"]["mood"] == "Neutral"  # pyright: ignore[reportIndexIssue, reportCallIssue, reportArgumentType]
    entities = store.load("t2:entities")
    assert entities is not None
    assert entities["entities"] == {}


def test_show_and_pin(
    store: InMemoryDocumentStore, analysis_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["apply", str(analysis_file), "--session", "t3"])
    cli.main(["pin", "tom_the_barkeep", "--session", "t3"])
    capsys.readouterr()

    cli.main(["show", "--session", "t3"])

    out = capsys.readouterr().out
    assert out.startswith("1 entities (0 major, 1 minor)")
    assert "tom_the_barkeep" in out
    assert "[pinned]" in out


def test_promote_then_show_json(
    store: InMemoryDocumentStore, analysis_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["apply", str(analysis_file), "--session", "t4"])
    cli.main(["promote", "tom_the_barkeep", "--reason", "Plot twist", "--session", "t4"])
    capsys.readouterr()

    cli.main(["show", "--json", "--session", "t4"])

    document = json.loads(capsys.readouterr().out)
    meta = document["entities"]["tom_the_barkeep"]["meta"]
    assert meta["classification"] == "major"
    assert meta["promotionReason"] == "Plot twist"


def test_unknown_entity_exits_with_validation_error(store: InMemoryDocumentStore) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["promote", "nobody", "--session", "t5"])

    assert excinfo.value.code == 2


def test_invalid_analysis_exits_with_validation_error(
    store: InMemoryDocumentStore, tmp_path: Path
) -> None:
    path = tmp_path / "broken.json"
    path.write_text("not json", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["apply", str(path), "--session", "t6"])

    assert excinfo.value.code == 2


def test_missing_file_is_fatal(store: InMemoryDocumentStore, tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["apply", str(tmp_path / "missing.json"), "--session", "t7"])

    assert excinfo.value.code == 1


def test_command_is_required() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2


def test_evaluate_prints_scores(
    store: InMemoryDocumentStore, analysis_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["apply", str(analysis_file), "--session", "t8"])
    capsys.readouterr()

    cli.main(["evaluate", "--session", "t8"])

    out = capsys.readouterr().out
    assert "tom_the_barkeep" in out
    assert "Promotion score" in out
