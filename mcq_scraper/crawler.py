"""High-level orchestration for rendering exam pages and emitting question records."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup
from playwright.async_api import (
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import ScrapeConfig
from .emitter import emit_to_disk, emit_to_endpoint
from .extractor import extract_questions
from .images import materialize_to_bundle, materialize_to_disk
from .models import ExamPage, QuestionRecord, RawExtraction, SaveResult
from .reconcile import fetch_answer_key, reconcile
from .runlog import RunLog
from .signals import VisualSignalClassifier
from .snapshot import STAMP_SCRIPT, load_snapshot, page_title
from .utils import (
    default_filename,
    exam_id_from_url,
    is_teacher_mode,
    output_name,
)

logger = logging.getLogger("mcq_scraper")

VIEWPORT = {"width": 1280, "height": 900}
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

InputChooser = Callable[[Dict[str, str]], Dict[str, str]]


class ScrapeError(RuntimeError):
    """The page could not be turned into a snapshot at all."""


@dataclass
class ScrapeResult:
    """Everything a single run produced."""

    page: ExamPage
    records: List[QuestionRecord]
    save: Optional[SaveResult]
    log: RunLog
    total_seconds: float = 0.0


def describe_page(soup: BeautifulSoup, url: str) -> ExamPage:
    return ExamPage(
        url=url,
        exam_id=exam_id_from_url(url),
        teacher_mode=is_teacher_mode(url),
        title=page_title(soup),
    )


def build_records(
    extractions: List[RawExtraction], subject: str
) -> List[QuestionRecord]:
    return [
        QuestionRecord.from_extraction(index, subject, raw)
        for index, raw in enumerate(extractions)
    ]


async def stabilize_page(
    page: Page,
    step: int = 400,
    delay: float = 0.06,
    settle: float = 0.8,
) -> int:
    """Scroll the whole document so lazy-loaded questions render, then settle."""
    total_height = await page.evaluate("() => document.body.scrollHeight")
    steps = 0
    for y in range(0, int(total_height or 0), step):
        await page.evaluate("(y) => window.scrollTo(0, y)", y)
        await page.wait_for_timeout(int(delay * 1000))
        steps += 1
    await page.evaluate("() => window.scrollTo(0, 0)")
    await page.wait_for_timeout(int(settle * 1000))
    return steps


async def render_snapshot(
    playwright: Playwright,
    url: str,
    config: ScrapeConfig,
    log: RunLog,
) -> Tuple[str, str]:
    """Load ``url`` headless, stabilize it and return the stamped HTML and final URL."""
    browser = await playwright.chromium.launch(
        headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"]
    )
    page = await browser.new_page(viewport=VIEWPORT, user_agent=USER_AGENT)
    page.set_default_navigation_timeout(config.navigation_timeout * 1000)
    try:
        log.append_line(f"Opening: {url}", "INFO")
        await page.goto(url, wait_until="networkidle")
        if config.wait_after_load:
            await page.wait_for_timeout(int(config.wait_after_load * 1000))
        log.append_line("Scrolling to load all questions...", "WAIT")
        steps = await stabilize_page(
            page, config.scroll_step, config.scroll_delay, config.settle_delay
        )
        logger.debug("Scrolled %d steps", steps)
        stamped = await page.evaluate(STAMP_SCRIPT)
        logger.debug("Stamped %s elements", stamped)
        html = await page.content()
        final_url = page.url
    finally:
        await browser.close()
    return html, final_url


def process_snapshot(
    html: str,
    url: str,
    config: ScrapeConfig,
    classifier: Optional[VisualSignalClassifier] = None,
    choose_inputs: Optional[InputChooser] = None,
    session: Optional[requests.Session] = None,
    log: Optional[RunLog] = None,
) -> ScrapeResult:
    """Run extraction, reconciliation, asset materialization and emission."""
    start = time.perf_counter()
    log = log or RunLog()
    session = session or requests.Session()

    soup = load_snapshot(html)
    page = describe_page(soup, url)
    log.append_line(f'Detected: "{page.title}"', "INFO")
    defaults = {
        "filename": default_filename(page.title, page.exam_id),
        "subject": page.title[:60],
    }
    inputs = choose_inputs(defaults) if choose_inputs else defaults
    filename = output_name(inputs.get("filename") or "", defaults["filename"])
    subject = inputs.get("subject") or defaults["subject"]

    extractions = extract_questions(
        soup, classifier, base_url=url, max_depth=config.max_depth, log=log
    )
    if not extractions:
        log.warn("No questions found! The page structure may have changed.")
        log.append_line("All done!", "DONE")
        return ScrapeResult(
            page, [], None, log, total_seconds=time.perf_counter() - start
        )

    api_questions: List[Dict[str, Any]] = []
    if config.use_answer_api and page.exam_id:
        api_questions = fetch_answer_key(
            session, page, config.answer_api_base, config.request_timeout, log
        )
    reconcile(extractions, api_questions, config.align, log)

    if config.emit_mode == "endpoint":
        bundle = materialize_to_bundle(
            extractions,
            session,
            config.image_timeout,
            config.default_image_extension,
            log,
        )
        records = build_records(extractions, subject)
        save = emit_to_endpoint(
            records,
            bundle,
            filename,
            config.output_root,
            session,
            config.local_ports,
            config.probe_timeout,
            log,
        )
    else:
        image_paths = materialize_to_disk(
            extractions,
            config.images_dir,
            session,
            config.image_timeout,
            config.default_image_extension,
            log,
        )
        records = build_records(extractions, subject)
        save = emit_to_disk(
            records,
            filename,
            config.output_root,
            image_paths,
            config.create_zip,
            log,
        )
    return ScrapeResult(
        page, records, save, log, total_seconds=time.perf_counter() - start
    )


async def run_scrape(
    url: str,
    config: ScrapeConfig,
    classifier: Optional[VisualSignalClassifier] = None,
    choose_inputs: Optional[InputChooser] = None,
    log: Optional[RunLog] = None,
) -> ScrapeResult:
    """Render ``url`` in a headless browser and run the full pipeline on it."""
    log = log or RunLog()
    async with async_playwright() as playwright:
        try:
            html, final_url = await render_snapshot(playwright, url, config, log)
        except PlaywrightTimeoutError as exc:
            raise ScrapeError(f"Timeout while loading {url}: {exc}") from exc
        except PlaywrightError as exc:
            raise ScrapeError(f"Could not load {url}: {exc}") from exc

    with requests.Session() as session:
        return process_snapshot(
            html, final_url, config, classifier, choose_inputs, session, log
        )
