from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

import soupsieve as sv

from .browser_capture import LiveCapture, LiveCaptureError
from .dom_snapshot import DomDocument
from .options_store import CONFIG_DIR, load_selector_options
from .selector_engine import get_analysis
from .selector_matcher import match_selector_report, validate_selector
from .url_processor import analyze_url, generate_rule


def _build_logger(verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("shadowtagger")
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    try:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(CONFIG_DIR / "shadowtagger.log", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(file_handler)
    except Exception:
        # Fallback to stderr logging if file logger cannot be initialized.
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(stream_handler)
    return logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shadowtagger", description="Shadow-DOM aware selectors and URL rules.")
    parser.add_argument("--options", type=Path, default=None, help="Path to a selector options JSON file.")
    parser.add_argument("--verbose", action="store_true", help="Log debug details.")
    commands = parser.add_subparsers(dest="command", required=True)

    url_cmd = commands.add_parser("url", help="Normalize a URL into a rule string.")
    url_cmd.add_argument("url")
    url_cmd.add_argument("--domain", action="store_true", help="Render the literal hostname.")

    select_cmd = commands.add_parser("select", help="Build a selector for an element of an HTML snapshot.")
    select_cmd.add_argument("html", type=Path)
    target = select_cmd.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", dest="element_id")
    target.add_argument("--attr", help="Attribute as name=value, searched across shadow trees.")
    target.add_argument("--css", help="CSS selector, searched across shadow trees.")
    select_cmd.add_argument("--url", default="")

    match_cmd = commands.add_parser("match", help="Resolve a ::shadow selector against an HTML snapshot.")
    match_cmd.add_argument("html", type=Path)
    match_cmd.add_argument("selector")

    live_cmd = commands.add_parser("live", help="Pick an element from a live page with Chromium.")
    live_cmd.add_argument("url")
    live_cmd.add_argument("--x", type=float, required=True)
    live_cmd.add_argument("--y", type=float, required=True)
    live_cmd.add_argument(
        "--hover",
        nargs=2,
        type=float,
        action="append",
        default=[],
        metavar=("X", "Y"),
        help="Pointer position visited before the pick; repeatable.",
    )
    live_cmd.add_argument("--headed", action="store_true")
    return parser


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _load_document(path: Path, url: str = "") -> DomDocument:
    return DomDocument.from_html(path.read_text(encoding="utf-8"), url=url)


def _run_url(args: argparse.Namespace) -> int:
    state = analyze_url(args.url)
    if args.domain:
        state.include_domain = True
        state.domain_wildcard = False
    _print({"rule": generate_rule(state), "state": state.to_payload()})
    return 0


def _run_select(args: argparse.Namespace, logger: logging.Logger) -> int:
    document = _load_document(args.html, args.url)
    if args.element_id:
        element = document.find_by_id(args.element_id)
    elif args.attr:
        name, _, value = args.attr.partition("=")
        element = document.find_by_attribute(name.strip(), value if value else None)
    else:
        found = document.deep_query_all(args.css)
        element = found[0] if found else None
    if element is None:
        logger.info("No element found in %s", args.html)
        _print({"error": "Element not found"})
        return 1

    analysis = get_analysis(document, element, load_selector_options(args.options))
    _print({"analysis": analysis.to_payload() if analysis else None})
    return 0


def _run_match(args: argparse.Namespace) -> int:
    document = _load_document(args.html)
    report = match_selector_report(document, args.selector)
    validation = validate_selector(document, args.selector)
    _print(
        {
            "matchCount": report.match_count,
            "segmentErrors": [item.message for item in report.segment_errors],
            "unique": validation.unique,
            "message": validation.message,
        }
    )
    return 0 if report.match_count else 1


def _run_live(args: argparse.Namespace, logger: logging.Logger) -> int:
    options = load_selector_options(args.options)
    try:
        with LiveCapture(headless=not args.headed) as capture:
            capture.open(args.url)
            for x, y in args.hover:
                capture.pointer_moved(x, y)
            capture.pointer_moved(args.x, args.y)
            document, element = capture.next_frame()
            if element is None:
                _print({"error": "No element at the given point"})
                return 1
            analysis = get_analysis(document, element, options)
            if analysis is None:
                _print({"analysis": None})
                return 1
            payload = analysis.to_payload()
            payload["liveMatchCount"] = capture.live_match_count(analysis.selector)
            _print({"analysis": payload, "rule": generate_rule(analyze_url(capture.url))})
    except LiveCaptureError as exc:
        logger.error("Live capture failed: %s", exc)
        _print({"error": str(exc)})
        return 2
    return 0


def main(argv: list[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "shadowtagger requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    args = _build_parser().parse_args(argv)
    logger = _build_logger(args.verbose)
    try:
        if args.command == "url":
            return _run_url(args)
        if args.command == "select":
            return _run_select(args, logger)
        if args.command == "match":
            return _run_match(args)
        return _run_live(args, logger)
    except (OSError, ValueError, sv.SelectorSyntaxError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        _print({"error": str(exc)})
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
