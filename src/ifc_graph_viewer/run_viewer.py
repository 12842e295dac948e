from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path

from ifc_graph_viewer.config import ViewerConfig
from ifc_graph_viewer.export import write_html
from ifc_graph_viewer.graph.entity_types import resolve_entity_type
from ifc_graph_viewer.observability import setup_logfire, setup_logging
from ifc_graph_viewer.paths import default_trace_path
from ifc_graph_viewer.session import ViewerSession
from ifc_graph_viewer.trace import TraceWriter
from ifc_graph_viewer.tui import (
    print_intent,
    print_progress,
    print_summary,
    print_welcome,
)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Expected an integer, got {value!r}"
        ) from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Display cap must be a positive integer.")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Interactive IFC graph viewer")
    source = ap.add_mutually_exclusive_group()
    source.add_argument(
        "--file",
        type=Path,
        default=None,
        help="IFC file to upload to the backend at startup.",
    )
    source.add_argument(
        "--graph",
        type=Path,
        default=None,
        help="Local graph JSON document ({nodes, edges}) to load instead.",
    )
    ap.add_argument(
        "--backend-url",
        default=None,
        help=(
            "Backend base URL "
            "(default: IFC_VIEWER_BACKEND_URL or http://127.0.0.1:5050)."
        ),
    )
    ap.add_argument(
        "--mode",
        choices=("chunked", "single"),
        default=None,
        help="Upload transport (default: IFC_VIEWER_UPLOAD_MODE or chunked).",
    )
    ap.add_argument(
        "--cap",
        type=_positive_int,
        default=None,
        help="Default per-type display cap (default: IFC_VIEWER_DEFAULT_CAP or 50).",
    )
    ap.add_argument(
        "--remote-neighbors",
        action="store_true",
        default=False,
        help="Fetch neighbourhoods from the backend's /fetch_neighbors on expand.",
    )
    ap.add_argument(
        "--summary",
        action="store_true",
        default=False,
        help="Print a plain summary instead of launching the TUI.",
    )
    ap.add_argument(
        "--show",
        action="append",
        default=[],
        metavar="TYPE",
        help="Entity type to toggle on after loading (repeatable; --summary mode).",
    )
    ap.add_argument(
        "--export-html",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write the displayed subgraph to an interactive HTML file.",
    )
    ap.add_argument(
        "--trace",
        action="store_true",
        default=False,
        help="Enable JSONL tracing of uploads and display intents.",
    )
    ap.add_argument(
        "--trace-path",
        type=Path,
        default=None,
        help="Path to trace output file (defaults to output/viewer_trace.jsonl).",
    )
    ap.add_argument(
        "--logfire",
        action="store_true",
        default=False,
        help="Enable Logfire instrumentation of backend requests.",
    )
    ap.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Debug logging (--summary mode).",
    )
    return ap


def _run_summary(session: ViewerSession, args: argparse.Namespace) -> int:
    print_welcome(session.config.backend_url, session.config.upload_mode)
    if args.file is not None:
        ok = session.upload(args.file.expanduser(), progress=print_progress)
    elif args.graph is not None:
        ok = session.load_graph_file(args.graph.expanduser())
    else:
        ok = session.load_default()
        if not ok and session.last_error is None:
            print("No --file or --graph given and no default graph asset found.")

    if ok:
        session.sync.add_listener(print_intent)
        for requested in args.show:
            entity_type = resolve_entity_type(requested, session.store.entity_types)
            if entity_type is None:
                print(f"Unknown entity type: {requested}", file=sys.stderr)
                continue
            if entity_type not in session.sync.active_types:
                session.sync.toggle_type(entity_type)

    print_summary(session.summary())

    if args.export_html is not None:
        path = write_html(session.surface, args.export_html.expanduser().resolve())
        print(f"Visualization: {path}")
    return 0 if session.last_error is None else 1


def main() -> int:
    args = build_parser().parse_args()

    setup_logging(args.verbose, tui=not args.summary)
    setup_logfire(enabled=args.logfire, console=args.summary)

    try:
        config = ViewerConfig.from_env().with_overrides(
            backend_url=args.backend_url,
            upload_mode=args.mode,
            default_cap=args.cap,
        )
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    # Initialize trace writer if requested
    trace: TraceWriter | None = None
    if args.trace:
        trace_path = (
            args.trace_path.expanduser().resolve()
            if args.trace_path
            else default_trace_path(Path(__file__).resolve().parent)
        )
        trace = TraceWriter(trace_path)

    session = ViewerSession(
        config,
        trace=trace,
        run_id=uuid.uuid4().hex,
        remote_neighbors=args.remote_neighbors,
    )
    try:
        if args.summary:
            return _run_summary(session, args)

        from ifc_graph_viewer.textual_app import run_viewer_app

        if args.graph is not None:
            session.load_graph_file(args.graph.expanduser())
        run_viewer_app(
            session,
            initial_file=args.file.expanduser() if args.file else None,
            load_default=args.graph is None,
        )
        if args.export_html is not None:
            write_html(session.surface, args.export_html.expanduser().resolve())
        return 0
    finally:
        session.close()
        if trace:
            trace.close()


if __name__ == "__main__":
    raise SystemExit(main())
