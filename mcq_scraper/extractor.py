"""Turn located question blocks into raw question extractions."""

from __future__ import annotations

import copy
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import urljoin

from bs4 import NavigableString, Tag

from .config import DEFAULT_MAX_DEPTH
from .locator import (
    OPTION_MARKERS,
    QuestionBlock,
    is_clickable,
    locate_question_blocks,
    marker_keys,
    marker_of,
    strip_marker,
    visible_text,
)
from .models import OPTION_KEYS, RawExtraction
from .runlog import RunLog
from .signals import ColorSignalClassifier, VisualSignalClassifier, class_string
from .snapshot import (
    RESOLVED_SRC_ATTR,
    rendered_size,
    strip_snapshot_attributes,
)
from .utils import normalize_question_text

logger = logging.getLogger("mcq_scraper.extractor")

T = TypeVar("T")

# Sponsor names and score-delta badges printed next to the question text.
NOISE_TOKENS = ("Ventures", "Admission", "-0.5", "𝓐", "𝓥")
TRACKING_TOKENS = ("facebook", "pixel", "google")
MIN_IMAGE_URL_LENGTH = 10
MIN_SVG_SIDE = 50
MIN_LINE_LENGTH = 3

BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "br", "dd", "div", "dl",
    "dt", "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5",
    "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
    "table", "td", "th", "tr", "ul",
}
SKIPPED_TAGS = {"script", "style", "noscript", "svg", "template"}


def block_text(tag: Tag) -> str:
    """Approximate the browser's ``innerText``: block elements break lines."""
    parts: List[str] = []

    def _collect(node: Tag) -> None:
        for child in node.children:
            if isinstance(child, NavigableString):
                # Comments, doctypes and script bodies are NavigableString subclasses.
                if type(child) is NavigableString:
                    parts.append(str(child))
                continue
            if not isinstance(child, Tag) or child.name in SKIPPED_TAGS:
                continue
            is_block = child.name in BLOCK_TAGS
            if is_block:
                parts.append("\n")
            _collect(child)
            if is_block:
                parts.append("\n")

    _collect(tag)
    return "".join(parts)


def _contains(ancestor: Tag, node: Tag) -> bool:
    if node is ancestor:
        return True
    return any(parent is ancestor for parent in node.parents)


def _child_path(ancestor: Tag, descendant: Tag) -> List[int]:
    """Indices into ``.contents`` leading from ``ancestor`` to ``descendant``."""
    path: List[int] = []
    node = descendant
    while node is not ancestor:
        parent = node.parent
        if parent is None:
            raise ValueError("descendant is not inside ancestor")
        path.append(next(i for i, child in enumerate(parent.contents) if child is node))
        node = parent
    path.reverse()
    return path


def _follow_path(root: Tag, path: Sequence[int]) -> Tag:
    node = root
    for index in path:
        node = node.contents[index]
    return node


def _is_noise(tag: Tag) -> bool:
    if "tag" in class_string(tag):
        return True
    text = tag.get_text()
    if not any(token in text for token in NOISE_TOKENS):
        return False
    # Only the innermost element carrying the token is noise.
    return not any(
        any(token in child.get_text() for token in NOISE_TOKENS)
        for child in tag.find_all(["span", "div"])
    )


def extract_question_text(
    block: QuestionBlock, classifier: VisualSignalClassifier
) -> str:
    """Question body with options, explanation boxes and badges removed."""
    clone = copy.copy(block.container)
    _follow_path(clone, _child_path(block.container, block.grid)).decompose()

    for box in [el for el in clone.find_all(True) if classifier.is_explanation_box(el)]:
        box.decompose()
    for badge in [el for el in clone.find_all(["span", "div"]) if _is_noise(el)]:
        badge.decompose()

    lines = [line.strip() for line in block_text(clone).splitlines()]
    kept = [line for line in lines if len(line) >= MIN_LINE_LENGTH]
    return normalize_question_text("\n".join(kept))


def extract_options(
    grid: Tag,
    classifier: VisualSignalClassifier,
    markers: Sequence[str] = OPTION_MARKERS,
) -> Tuple[Dict[str, str], Optional[str]]:
    """Return ``(options, correct_key)`` for an options grid."""
    keys = marker_keys(markers)
    found: Dict[str, str] = {}
    correct: Optional[str] = None
    for button in grid.find_all(is_clickable):
        text = visible_text(button)
        marker = marker_of(text, markers)
        if marker is None:
            continue
        key = keys[marker]
        found[key] = strip_marker(text, marker)
        if correct is None and classifier.is_correct_option(button):
            correct = key
    options = {key: found[key] for key in OPTION_KEYS if key in found}
    return options, correct


def extract_explanation(block: QuestionBlock, classifier: VisualSignalClassifier) -> str:
    """Text of the first highlighted box among the container's direct children."""
    for child in block.container.children:
        if not isinstance(child, Tag) or _contains(child, block.grid):
            continue
        if classifier.is_explanation_box(child):
            lines = [line.strip() for line in block_text(child).splitlines()]
            return "\n".join(line for line in lines if line)
    return ""


def extract_image_urls(container: Tag, base_url: str = "") -> List[str]:
    urls: List[str] = []
    for img in container.find_all("img"):
        src = img.get(RESOLVED_SRC_ATTR) or img.get("src") or ""
        if not src or src.startswith("data:"):
            continue
        if base_url:
            src = urljoin(base_url, src)
        if len(src) <= MIN_IMAGE_URL_LENGTH:
            continue
        if any(token in src for token in TRACKING_TOKENS):
            continue
        if src not in urls:
            urls.append(src)
    return urls


def extract_svg(container: Tag) -> str:
    """Markup of the first inline SVG large enough to be a diagram."""
    for svg in container.find_all("svg"):
        width, height = rendered_size(svg)
        if width > MIN_SVG_SIDE or height > MIN_SVG_SIDE:
            return str(strip_snapshot_attributes(copy.copy(svg)))
    return ""


def _guarded(
    step: Callable[[], T], default: T, label: str, index: int, log: RunLog
) -> T:
    try:
        return step()
    except Exception as exc:  # pylint: disable=broad-except
        log.warn(f"Q{index + 1}: {label} extraction failed: {exc}")
        return default


def extract_block(
    block: QuestionBlock,
    classifier: Optional[VisualSignalClassifier] = None,
    base_url: str = "",
    markers: Sequence[str] = OPTION_MARKERS,
    index: int = 0,
    log: Optional[RunLog] = None,
) -> RawExtraction:
    """Extract one question; a failing step leaves its field empty."""
    classifier = classifier or ColorSignalClassifier()
    log = log or RunLog()

    options, correct = _guarded(
        lambda: extract_options(block.grid, classifier, markers),
        ({}, None),
        "option",
        index,
        log,
    )
    return RawExtraction(
        question=_guarded(
            lambda: extract_question_text(block, classifier), "", "text", index, log
        ),
        options=options,
        correct_answer=correct,
        explanation=_guarded(
            lambda: extract_explanation(block, classifier),
            "",
            "explanation",
            index,
            log,
        ),
        image_urls=_guarded(
            lambda: extract_image_urls(block.container, base_url),
            [],
            "image",
            index,
            log,
        ),
        svg_code=_guarded(
            lambda: extract_svg(block.container), "", "svg", index, log
        ),
    )


def extract_questions(
    soup: Tag,
    classifier: Optional[VisualSignalClassifier] = None,
    base_url: str = "",
    markers: Sequence[str] = OPTION_MARKERS,
    max_depth: int = DEFAULT_MAX_DEPTH,
    log: Optional[RunLog] = None,
) -> List[RawExtraction]:
    """Locate and extract every question block of a snapshot, in document order."""
    classifier = classifier or ColorSignalClassifier()
    log = log or RunLog()

    log.append_line("Scanning page for questions...", "FIND")
    blocks = locate_question_blocks(soup, markers, max_depth)
    log.append_line(f"Found {len(blocks)} question blocks", "FIND")

    extractions = [
        extract_block(block, classifier, base_url, markers, index, log)
        for index, block in enumerate(blocks)
    ]
    for index, raw in enumerate(extractions, start=1):
        logger.debug(
            "Q%d: %d options, correct=%s, %d image(s), svg=%s",
            index,
            len(raw.options),
            raw.correct_answer,
            len(raw.image_urls),
            bool(raw.svg_code),
        )
    log.append_line(f"Extracted {len(extractions)} questions from DOM", "OK")
    return extractions
