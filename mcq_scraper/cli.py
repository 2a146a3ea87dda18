"""Command-line entry point for the exam question scraper."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

import requests

from .config import ALIGN_MODES, EMIT_MODES, DEFAULT_MAX_DEPTH, ScrapeConfig
from .crawler import ScrapeError, ScrapeResult, process_snapshot, run_scrape
from .runlog import RunLog, prompt_for_inputs
from .signals import build_classifier

logger = logging.getLogger("mcq_scraper.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("scrape", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--name",
        default=None,
        help="Output filename (defaults to one derived from the exam title)",
    )
    parser.add_argument(
        "--subject",
        default=None,
        help="Subject label stored on every question (defaults to the exam title)",
    )
    parser.add_argument(
        "--output",
        default="public",
        type=Path,
        help="Directory where the JSON and images/ should be written",
    )
    parser.add_argument(
        "--mode",
        choices=EMIT_MODES,
        default="disk",
        help="Write files directly, or POST to the local save endpoint",
    )
    parser.add_argument(
        "--zip",
        action="store_true",
        help="Also archive the JSON and images into a zip (disk mode only)",
    )
    parser.add_argument(
        "--align",
        choices=ALIGN_MODES,
        default="positional",
        help="How DOM questions are paired with answer-key questions",
    )
    parser.add_argument(
        "--signals",
        default="color",
        help="Comma-separated correct-answer signals: color, attributes",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="How many ancestors to climb looking for an option group",
    )
    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Skip the remote answer-key lookup",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Ask for the output filename and subject before saving",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape multiple-choice questions from a rendered exam page into JSON.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape_parser = subparsers.add_parser(
        "scrape", help="Render an exam page headless and extract its questions"
    )
    scrape_parser.add_argument("url", help="Exam page URL")
    scrape_parser.add_argument(
        "--wait",
        type=float,
        default=1.0,
        help="Seconds to wait after network idle before scrolling",
    )
    scrape_parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Navigation timeout in seconds",
    )
    _add_common_arguments(scrape_parser)

    extract_parser = subparsers.add_parser(
        "extract", help="Extract questions from a saved, stamped HTML snapshot"
    )
    extract_parser.add_argument("snapshot", type=Path, help="Snapshot HTML file")
    extract_parser.add_argument(
        "--url",
        required=True,
        help="URL the snapshot was taken from (exam id and teacher mode)",
    )
    _add_common_arguments(extract_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def build_config(args: argparse.Namespace) -> ScrapeConfig:
    config = ScrapeConfig(
        output_root=Path(args.output).resolve(),
        max_depth=args.max_depth,
        use_answer_api=not args.no_api,
        align=args.align,
        emit_mode=args.mode,
        create_zip=args.zip,
    )
    if getattr(args, "wait", None) is not None:
        config.wait_after_load = args.wait
    if getattr(args, "timeout", None) is not None:
        config.navigation_timeout = args.timeout
    return config


def _input_chooser(args: argparse.Namespace):
    def choose(defaults):
        merged = dict(defaults)
        if args.name:
            merged["filename"] = args.name
        if args.subject:
            merged["subject"] = args.subject
        return prompt_for_inputs(merged, interactive=args.interactive)

    return choose


def _report(result: ScrapeResult) -> None:
    logger.info(
        "Finished in %.2fs (%d questions, %d with a correct answer)",
        result.total_seconds,
        len(result.records),
        sum(1 for record in result.records if record.correct_answer),
    )
    if result.save is None:
        return
    if result.save.saved:
        logger.info("Output: %s", result.save.location)
    else:
        logger.warning("Save endpoint refused the records; wrote %s instead", result.save.location)


def _run_scrape(args: argparse.Namespace) -> int:
    config = build_config(args)
    classifier = build_classifier([s.strip() for s in args.signals.split(",") if s.strip()])
    result = asyncio.run(
        run_scrape(args.url, config, classifier, _input_chooser(args), RunLog())
    )
    _report(result)
    return 0


def _run_extract(args: argparse.Namespace) -> int:
    config = build_config(args)
    classifier = build_classifier([s.strip() for s in args.signals.split(",") if s.strip()])
    try:
        html = args.snapshot.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScrapeError(f"Cannot read snapshot {args.snapshot}: {exc}") from exc
    with requests.Session() as session:
        result = process_snapshot(
            html,
            args.url,
            config,
            classifier,
            _input_chooser(args),
            session,
            RunLog(),
        )
    _report(result)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.command == "scrape":
            code = _run_scrape(args)
        else:
            code = _run_extract(args)
    except (ScrapeError, ValueError) as exc:
        logger.error("%s", exc)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
