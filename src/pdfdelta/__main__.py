"""Command line interface for pdfdelta."""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from typing import Dict, Iterable, Optional

from .annotate import mark_differences
from .compare import compare_pdfs
from .config import AppConfig, load_config, load_env
from .core.types import Changed, DiffOutcome, PageComparison, is_unchanged
from .engine import PdfEngine, RenderSettings
from .errors import ConfigError, PdfDeltaError
from .events import list_diff_events
from .watcher import DocumentWatcher


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdfdelta",
        description="Watch PDF folders and write diff PDFs of the visually changed pages.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    sub = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("watch", "Poll every configured location until interrupted"),
        ("once", "Run a single pass over every configured location"),
        ("events", "List generated diff files"),
        ("serve", "Serve events and signed diff files over HTTP"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("--config", help="Path to the JSON configuration")

    events = sub.choices["events"]
    events.add_argument("--start", type=datetime.fromisoformat, help="ISO start of the range")
    events.add_argument("--end", type=datetime.fromisoformat, help="ISO end of the range")

    serve = sub.choices["serve"]
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5020)

    compare = sub.add_parser("compare", help="Compare two PDFs once")
    compare.add_argument("current", help="Path to the revised PDF")
    compare.add_argument("baseline", help="Path to the baseline PDF")
    compare.add_argument("--output", help="Where to write the diff PDF")
    compare.add_argument("--width", type=int, default=500, help="Raster width in pixels")
    return parser


def comparison_to_dict(index: int, comparison: PageComparison) -> Dict[str, object]:
    if isinstance(comparison, Changed):
        return {"page": index, "status": "changed", "segments": [list(s) for s in comparison.segments]}
    return {"page": index, "status": "identical"}


def outcome_to_dict(outcome: DiffOutcome) -> Dict[str, object]:
    return {
        "current": str(outcome.current_path),
        "output": str(outcome.output_path) if outcome.output_path else None,
        "dropped_pages": list(outcome.dropped_pages),
        "stage": outcome.stage,
        "error": str(outcome.error) if outcome.error else None,
    }


def _print_json(data: object) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _watch(config: AppConfig, once: bool) -> int:
    watcher = DocumentWatcher.from_config(config)
    while True:
        delay = watcher.request_loop()
        if once:
            _print_json([outcome_to_dict(outcome) for outcome in watcher.last_results.values()])
            return 0 if all(outcome.ok for outcome in watcher.last_results.values()) else 1
        time.sleep(delay.total_seconds())


def _compare(args: argparse.Namespace) -> int:
    engine = PdfEngine(RenderSettings(target_width=args.width))
    comparisons = compare_pdfs(engine, args.current, args.baseline)
    report: Dict[str, object] = {
        "pages": [comparison_to_dict(i, c) for i, c in enumerate(comparisons)],
        "output": None,
    }
    if args.output and not is_unchanged(comparisons):
        annotated = mark_differences(engine, args.current, comparisons, args.output)
        report["output"] = str(annotated.path)
        report["dropped_pages"] = list(annotated.dropped_pages)
    _print_json(report)
    return 0


def _events(config: AppConfig, args: argparse.Namespace) -> int:
    output_dirs = DocumentWatcher.from_config(config).output_dirs
    _print_json([event.to_dict() for event in list_diff_events(output_dirs, args.start, args.end)])
    return 0


def _serve(config: AppConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from .server import create_app
    from .signing import load_private_key

    if config.private_key_path is None:
        raise ConfigError("Serving files requires 'private_key_path' or PDFDELTA_PRIVATE_KEY")
    app = create_app(
        DocumentWatcher.from_config(config).output_dirs,
        load_private_key(config.private_key_path),
    )
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        from . import __version__

        print(__version__)
        return 0
    if args.command is None:
        parser.print_help()
        return 2

    load_env()
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        if args.command == "compare":
            return _compare(args)
        config = load_config(args.config)
        if args.command in ("watch", "once"):
            return _watch(config, once=args.command == "once")
        if args.command == "events":
            return _events(config, args)
        return _serve(config, args)
    except PdfDeltaError as exc:
        logging.getLogger("pdfdelta").error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
