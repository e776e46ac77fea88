"""Command-line entry point for reviewkit."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__, storybook
from .config import Settings, load_settings
from .engine import RuleEngine, default_engine
from .errors import ReviewkitError
from .report import render_html_report, render_markdown_report, render_text_feedback
from .result import RuleResult, format_summary_table, summarize
from .rules import Category
from .storage import ReportPaths, store_for
from .utils import iter_code_files, read_text_file
from .utils.code import PYTHON_EXTENSIONS, SCRIPT_EXTENSIONS

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
REVIEW_EXTENSIONS = tuple(f".{ext}" for ext in SCRIPT_EXTENSIONS + PYTHON_EXTENSIONS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reviewkit",
        description="Accessibility checks for component HTML and heuristic code review.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (defaults to .reviewkit.yaml when present).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (overrides the configured level).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    a11y = commands.add_parser("a11y", help="Check a component HTML file and write reports.")
    a11y.add_argument("path", nargs="?", help="Component HTML file, e.g. src/stories/Button/button.html.")
    a11y.add_argument(
        "--docs",
        "-d",
        dest="component",
        default=None,
        help="Check every story variant of a component's docs page instead of one file.",
    )
    a11y.add_argument("--root", default=".", help="Project root used to locate stories for --docs.")
    a11y.add_argument(
        "--no-stories",
        dest="wire_stories",
        action="store_false",
        help="Do not wire the generated report into the component's stories file.",
    )
    a11y.add_argument(
        "--out",
        "--output",
        dest="output_path",
        default=None,
        help="Also write the structured result as JSON (e.g., artifacts/a11y.json).",
    )

    review = commands.add_parser("review", help="Review source files and print feedback.")
    review.add_argument("paths", nargs="+", help="Files or directories to review.")
    review.add_argument(
        "--out",
        "--output",
        dest="output_path",
        default=None,
        help="Write the structured results as JSON.",
    )

    serve = commands.add_parser("serve", help="Run the review API, webhook and SSE server.")
    serve.add_argument("--host", default=None, help="Interface to bind (overrides settings).")
    serve.add_argument("--port", type=int, default=None, help="Port to bind (overrides settings).")
    return parser


def run_a11y(
    html_path: Path,
    engine: RuleEngine,
    markup: Optional[str] = None,
    wire_stories: bool = True,
    timestamp: Optional[datetime] = None,
) -> tuple[RuleResult, ReportPaths]:
    """Check ``html_path`` (or ``markup`` on its behalf) and write both reports beside it."""

    logger.info("Checking %s", html_path)
    if markup is None:
        markup = read_text_file(html_path)
    result = engine.evaluate(markup, Category.MARKUP)
    timestamp = timestamp or datetime.now()
    paths = store_for(html_path).write(
        render_html_report(result, str(html_path), timestamp),
        render_markdown_report(result, str(html_path), timestamp),
    )
    if wire_stories:
        storybook.wire_report(html_path)
    return result, paths


def run_review(paths: List[str], engine: RuleEngine) -> Dict[str, RuleResult]:
    results: Dict[str, RuleResult] = {}
    for path in iter_code_files(paths, extensions=REVIEW_EXTENSIONS):
        results[str(path)] = engine.evaluate_source(str(path), read_text_file(path))
    return results


def write_json(payload: object, output_path: Optional[str]) -> None:
    if not output_path:
        return
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"\nReport written to {output_path}")


def _a11y(args: argparse.Namespace, engine: RuleEngine) -> int:
    if args.component:
        stories_path = storybook.find_stories_file(args.component, args.root)
        if stories_path is None:
            raise ReviewkitError(f"No stories file found for component {args.component}")
        html_path, markup = storybook.docs_markup(stories_path)
    elif args.path:
        html_path = Path(args.path)
        storybook.validate_component_html(html_path)
        markup = None
    else:
        raise ReviewkitError("Pass a component HTML file or --docs <component>")

    result, paths = run_a11y(html_path, engine, markup=markup, wire_stories=args.wire_stories)
    print(format_summary_table(result))
    print("\nReports:")
    print(f"  - HTML: {paths.html}")
    print(f"  - MDX:  {paths.markdown}")
    write_json(result.to_dict(), args.output_path)
    return summarize(result).exit_code()


def _review(args: argparse.Namespace, engine: RuleEngine) -> int:
    results = run_review(args.paths, engine)
    if not results:
        raise ReviewkitError("No reviewable source files found")
    exit_code = 0
    for path, result in results.items():
        print(render_text_feedback(result, path))
        exit_code = max(exit_code, summarize(result).exit_code())
    write_json({path: result.to_dict() for path, result in results.items()}, args.output_path)
    return exit_code


def _serve(args: argparse.Namespace, settings: Settings) -> int:
    from .server import run

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    run(replace(settings, **overrides))
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ReviewkitError as e:
        parser.error(str(e))
    logging.basicConfig(level=args.log_level or settings.log_level, format=LOG_FORMAT)

    engine = default_engine(disabled=settings.disabled_rules)
    try:
        if args.command == "a11y":
            return _a11y(args, engine)
        if args.command == "review":
            return _review(args, engine)
        return _serve(args, settings)
    except ReviewkitError as e:
        logger.error("%s", e)
        return 3


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
