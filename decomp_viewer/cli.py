"""Command-line entry point for the decompiler viewer."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional

from . import __version__
from .archive import (
    ArchiveError,
    class_member_name,
    is_inner_class,
    list_class_members,
    validate_archive,
)
from .config import ConfigError, load_config, parse_option_overrides
from .highlight import (
    BLOCK_COMMENT,
    KEYWORD,
    LINE_COMMENT,
    STRING,
    Span,
)
from .logging import configure_logging
from .namespace import format_tree
from .session import ViewerSession
from .tasks import ProgressEvent, TaskFailure, TaskHandle, TaskSuccess

ANSI_RESET = "\033[0m"
ANSI_STYLES = {
    KEYWORD: "\033[1;35m",
    STRING: "\033[34m",
    LINE_COMMENT: "\033[3;32m",
    BLOCK_COMMENT: "\033[3;32m",
}


def _path(value: str) -> Path:
    path = Path(value).expanduser().resolve()
    return path


def _existing_file(value: str) -> Path:
    path = _path(value)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"File not found: {path}")
    return path


def _add_engine_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=_existing_file,
        help="JSON configuration file (defaults to $DECOMP_VIEWER_CONFIG)",
    )
    parser.add_argument(
        "--engine-jar",
        type=_path,
        help="Path to the decompiler engine jar",
    )
    parser.add_argument(
        "--java",
        type=_path,
        help="Path to the java executable used to run the engine",
    )
    parser.add_argument(
        "--option",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Engine option passed through unchanged (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Browse and export decompiled class archives")
    parser.add_argument("--version", action="version", version=f"decomp-viewer {__version__}")
    parser.add_argument(
        "--verbose", action="store_true", help="Print debug logging to stderr"
    )
    parser.add_argument("--log-file", type=_path, help="Write a detailed log to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    gui_parser = subparsers.add_parser("gui", help="Launch the decompiler viewer window")
    gui_parser.add_argument(
        "archive",
        nargs="?",
        type=_existing_file,
        help="Archive to open on start-up",
    )
    _add_engine_arguments(gui_parser)
    gui_parser.set_defaults(func=_run_gui)

    list_parser = subparsers.add_parser(
        "list", help="List class entries of an archive without decompiling"
    )
    list_parser.add_argument("archive", type=_existing_file, help="Archive to inspect")
    list_parser.add_argument(
        "--include-inner",
        action="store_true",
        help="Also list inner and anonymous classes",
    )
    list_parser.set_defaults(func=_run_list)

    tree_parser = subparsers.add_parser(
        "tree", help="Decompile an archive and print its namespace tree"
    )
    tree_parser.add_argument("archive", type=_existing_file, help="Archive to decompile")
    _add_engine_arguments(tree_parser)
    tree_parser.set_defaults(func=_run_tree)

    show_parser = subparsers.add_parser(
        "show", help="Decompile an archive and print one class"
    )
    show_parser.add_argument("archive", type=_existing_file, help="Archive to decompile")
    show_parser.add_argument("name", help="Qualified class name, e.g. com/example/Main")
    show_parser.add_argument(
        "--color", action="store_true", help="Highlight the source with ANSI colours"
    )
    _add_engine_arguments(show_parser)
    show_parser.set_defaults(func=_run_show)

    decompile_parser = subparsers.add_parser(
        "decompile", help="Decompile an archive and export the sources"
    )
    decompile_parser.add_argument(
        "archive", type=_existing_file, help="Archive to decompile"
    )
    target = decompile_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--output", type=_path, help="Directory to write sources into")
    target.add_argument("--zip", type=_path, help="Zip archive to write sources into")
    decompile_parser.add_argument(
        "--quiet", action="store_true", help="Suppress per-class progress output"
    )
    _add_engine_arguments(decompile_parser)
    decompile_parser.set_defaults(func=_run_decompile)

    return parser


def _load_session(args: argparse.Namespace) -> ViewerSession:
    try:
        config = load_config(getattr(args, "config", None))
        overrides = parse_option_overrides(getattr(args, "option", None))
    except ConfigError as exc:
        print(f"[ERROR] {exc}")
        raise SystemExit(2) from exc

    if getattr(args, "engine_jar", None) is not None:
        config = replace(config, engine_jar=args.engine_jar)
    if getattr(args, "java", None) is not None:
        config = replace(config, java=args.java)
    if overrides:
        config = config.with_options(overrides)
    return ViewerSession(config)


def _format_progress(event: ProgressEvent) -> str:
    if event.total is None:
        return f"[{event.completed}] {event.message}"
    return f"[{event.completed}/{event.total}] {event.message}"


def _drive(handle: TaskHandle, *, quiet: bool = False) -> TaskSuccess:
    for message in handle.wait():
        if isinstance(message, ProgressEvent):
            if not quiet:
                print(_format_progress(message))
        elif isinstance(message, TaskFailure):
            print(f"[ERROR] {message.reason}")
            raise SystemExit(1)
    assert isinstance(handle.outcome, TaskSuccess)
    return handle.outcome


def _decompile(session: ViewerSession, archive: Path, *, quiet: bool = True) -> None:
    outcome = _drive(session.open_archive(archive), quiet=quiet)
    session.apply_outcome(outcome)


def _render_spans(spans: Iterable[Span]) -> str:
    chunks = []
    for span in spans:
        style = ANSI_STYLES.get(span.kind)
        chunks.append(f"{style}{span.text}{ANSI_RESET}" if style else span.text)
    return "".join(chunks)


def _run_gui(args: argparse.Namespace) -> None:
    from .gui import main as launch_gui

    session = _load_session(args)
    launch_gui(session=session, archive=args.archive)


def _run_list(args: argparse.Namespace) -> None:
    try:
        archive = validate_archive(args.archive)
        members = list_class_members(archive)
    except ArchiveError as exc:
        print(f"[ERROR] {exc}")
        raise SystemExit(1) from exc

    for member in members:
        if not args.include_inner and is_inner_class(member):
            continue
        print(class_member_name(member))


def _run_tree(args: argparse.Namespace) -> None:
    session = _load_session(args)
    _decompile(session, args.archive)
    for line in format_tree(session.tree):
        print(line)


def _run_show(args: argparse.Namespace) -> None:
    session = _load_session(args)
    _decompile(session, args.archive)
    name = args.name.replace(".", session.config.delimiter)
    text, spans = session.highlighted(name)
    if args.color:
        sys.stdout.write(_render_spans(spans))
    else:
        sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")


def _run_decompile(args: argparse.Namespace) -> None:
    session = _load_session(args)
    _decompile(session, args.archive, quiet=args.quiet)
    print(f"Decompiled {len(session.store)} classes from {args.archive.name}")

    if args.output is not None:
        handle = session.export_to_directory(args.output)
        destination = args.output
    else:
        handle = session.export_to_archive(args.zip)
        destination = args.zip

    outcome = _drive(handle, quiet=args.quiet)
    summary = outcome.result
    print(f"Saved {len(summary.written)} classes to {destination}")
    if summary.skipped:
        print(f"[INFO] Skipped {len(summary.skipped)} classes without content")


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    argv_list = list(argv)
    if not argv_list:
        argv_list = ["gui"]
    args = parser.parse_args(argv_list)
    configure_logging(verbose=args.verbose, log_file=args.log_file)
    args.func(args)


__all__ = ["build_parser", "main"]
