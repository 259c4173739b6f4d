from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from entitystate.adapters.analyzer import (
    AnalyzerPayloadError,
    parse_analysis_text,
    translate_analysis,
)
from entitystate.adapters.sqlalchemy import create_document_store
from entitystate.app import TrackingSession, open_session
from entitystate.config import (
    ConfigurationError,
    configure_logging,
    get_database_config,
    get_tracking_config,
)
from entitystate.domain.delta import MISSING
from entitystate.domain.errors import EntityStateError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from entitystate.domain.ports import DocumentStore

log = logging.getLogger(__name__)

DEFAULT_SESSION = "default"


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track evolving entity state")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    session_parent = argparse.ArgumentParser(add_help=False)
    session_parent.add_argument(
        "--session",
        type=str,
        default=os.getenv("ENTITYSTATE_SESSION", DEFAULT_SESSION),
        help="Session key the documents are stored under",
    )

    apply = subparsers.add_parser(
        "apply", parents=[session_parent], help="Apply an analyzer result file"
    )
    apply.add_argument("file", type=Path, help="JSON file produced by an analyzer")
    apply.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview primary-entity operations without changing anything",
    )

    show = subparsers.add_parser("show", parents=[session_parent], help="Show tracked entities")
    show.add_argument("--json", action="store_true", help="Print the registry document")

    promote = subparsers.add_parser(
        "promote", parents=[session_parent], help="Promote an entity to major"
    )
    promote.add_argument("entity_id", type=str)
    promote.add_argument("--reason", type=str, help="Reason recorded on the entity")

    demote = subparsers.add_parser(
        "demote", parents=[session_parent], help="Demote an entity to minor"
    )
    demote.add_argument("entity_id", type=str)
    demote.add_argument("--reason", type=str, help="Reason recorded on the entity")

    pin = subparsers.add_parser(
        "pin", parents=[session_parent], help="Toggle an entity's classification pin"
    )
    pin.add_argument("entity_id", type=str)

    subparsers.add_parser(
        "evaluate", parents=[session_parent], help="Print rule-based scoring for every entity"
    )

    return parser.parse_args(list(argv))


def _build_store() -> DocumentStore:
    config = get_database_config()
    return create_document_store(config.uri, connect_args=config.connect_args())


def _open_session(session_key: str) -> TrackingSession:
    return open_session(session_key, store=_build_store(), config=get_tracking_config())


# Commands ----------------------------------------------------------------------


def _run_apply(session: TrackingSession, args: argparse.Namespace) -> None:
    result = translate_analysis(parse_analysis_text(args.file.read_text(encoding="utf-8")))
    if args.dry_run:
        for preview in session.preview_primary(result.operations):
            if preview.error is not None:
                print(f"{preview.kind} {preview.path}: error: {preview.error}")
                continue
            print(
                f"{preview.kind} {preview.path}: "
                f"{_render(preview.old_value)} -> {_render(preview.new_value)}"
            )
        return

    outcome = session.apply_analysis(result)
    applied = sum(1 for item in outcome.primary_results if item.success)
    summary = outcome.classification
    log.info(
        "Applied %d/%d primary operations; created=%s promoted=%s demoted=%s updated=%s",
        applied,
        len(outcome.primary_results),
        summary.created,
        summary.promoted,
        summary.demoted,
        summary.updated,
    )
    if summary.dropped_operations:
        log.warning("Dropped %d operations without a destination", summary.dropped_operations)
    for error in summary.errors:
        log.warning("%s %s: %s", error.action, error.name, error.message)
    for rejected in outcome.rejected:
        log.warning("Rejected operation for %s: %s", rejected.owner, rejected.message)


def _run_show(session: TrackingSession, args: argparse.Namespace) -> None:
    if args.json:
        print(session.registry.export_json())
        return
    stats = session.registry.stats()
    print(
        f"{stats.total} entities ({stats.major} major, {stats.minor} minor), "
        f"{stats.active} active, {stats.mentioned} recently mentioned"
    )
    for record in session.registry.entities():
        meta = record.meta
        pin = " [pinned]" if meta.user_pinned else ""
        print(
            f"  {meta.id:<24} {meta.classification:<6} seen {meta.appearance_count}x "
            f"last {meta.last_seen:%Y-%m-%d %H:%M}{pin}"
        )


def _run_promote(session: TrackingSession, args: argparse.Namespace) -> None:
    record = session.promote(args.entity_id, args.reason)
    log.info("%s is now %s", record.meta.id, record.meta.classification)


def _run_demote(session: TrackingSession, args: argparse.Namespace) -> None:
    record = session.demote(args.entity_id, args.reason)
    log.info("%s is now %s", record.meta.id, record.meta.classification)


def _run_pin(session: TrackingSession, args: argparse.Namespace) -> None:
    pinned = session.toggle_pin(args.entity_id)
    log.info("%s %s", args.entity_id, "pinned" if pinned else "unpinned")


def _run_evaluate(session: TrackingSession, args: argparse.Namespace) -> None:
    _ = args
    for record, evaluation in session.evaluate():
        marker = "*" if evaluation.should_change else " "
        print(f"{marker} {record.meta.id:<24} {record.meta.classification:<6} {evaluation.reason}")


_COMMANDS: dict[str, Callable[[TrackingSession, argparse.Namespace], None]] = {
    "apply": _run_apply,
    "show": _run_show,
    "promote": _run_promote,
    "demote": _run_demote,
    "pin": _run_pin,
    "evaluate": _run_evaluate,
}


def _render(value: object) -> str:
    if value is MISSING:
        return "(absent)"
    return json.dumps(value)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        session = _open_session(parsed_args.session)
        _COMMANDS[parsed_args.command](session, parsed_args)
        session.flush(strict=True)
    except (ConfigurationError, AnalyzerPayloadError, EntityStateError):
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
