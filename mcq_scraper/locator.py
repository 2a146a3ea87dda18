"""Locate question containers by walking up from option-button clusters."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Set

from bs4 import BeautifulSoup, Tag

from .config import DEFAULT_MAX_DEPTH
from .models import OPTION_KEYS

logger = logging.getLogger("mcq_scraper.locator")

# Bengali ka, kha, ga, gha: the option labels, always in this order.
OPTION_MARKERS = ("ক", "খ", "গ", "ঘ")
MARKER_SEPARATORS = r"\s।.):"


@dataclass
class QuestionBlock:
    """One located question: its container, options grid and first option."""

    container: Tag
    grid: Tag
    anchor: Tag


@lru_cache(maxsize=None)
def _marker_pattern(marker: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(marker)}(?=[{MARKER_SEPARATORS}]|$)")


@lru_cache(maxsize=None)
def _marker_prefix_pattern(marker: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(marker)}[{MARKER_SEPARATORS}]*")


def is_clickable(tag: Tag) -> bool:
    return isinstance(tag, Tag) and (
        tag.name == "button" or tag.get("role") == "button"
    )


def visible_text(tag: Tag) -> str:
    return tag.get_text(" ", strip=True)


def marker_of(text: str, markers: Sequence[str] = OPTION_MARKERS) -> Optional[str]:
    """Return the ordinal marker ``text`` starts with, if any."""
    for marker in markers:
        if _marker_pattern(marker).match(text):
            return marker
    return None


def strip_marker(text: str, marker: str) -> str:
    """Remove ``marker`` and the separator punctuation that follows it."""
    return _marker_prefix_pattern(marker).sub("", text, count=1).strip()


def marker_keys(markers: Sequence[str] = OPTION_MARKERS) -> dict:
    if len(markers) != len(OPTION_KEYS):
        raise ValueError(
            f"Expected {len(OPTION_KEYS)} option markers, got {len(markers)}"
        )
    return dict(zip(markers, OPTION_KEYS))


def element_children(tag: Tag) -> List[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def has_single_option_group(
    node: Tag, markers: Sequence[str] = OPTION_MARKERS
) -> bool:
    """True when the clickable descendants carry every marker exactly once."""
    counts = Counter(
        marker_of(visible_text(button), markers)
        for button in node.find_all(is_clickable)
    )
    return all(counts[marker] == 1 for marker in markers)


def find_options_grid(
    anchor: Tag,
    markers: Sequence[str] = OPTION_MARKERS,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Optional[Tag]:
    """Walk up from ``anchor`` to the smallest ancestor holding one option group."""
    node = anchor.parent
    for _ in range(max_depth):
        if node is None or isinstance(node, BeautifulSoup):
            return None
        if has_single_option_group(node, markers):
            return node
        node = node.parent
    return None


def resolve_container(grid: Tag) -> Optional[Tag]:
    """Return the question container for an options grid.

    The grid's parent is promoted one level when it holds nothing but the grid,
    otherwise the question text would be lost.
    """
    container = grid.parent
    if container is None or isinstance(container, BeautifulSoup):
        return None
    if len(element_children(container)) <= 1:
        container = container.parent
    if container is None or isinstance(container, BeautifulSoup):
        return None
    return container


def locate_question_blocks(
    soup: Tag,
    markers: Sequence[str] = OPTION_MARKERS,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[QuestionBlock]:
    """Find every question block in document order."""
    anchors = [
        tag
        for tag in soup.find_all(is_clickable)
        if len(visible_text(tag)) > 1
        and marker_of(visible_text(tag), markers) == markers[0]
    ]
    logger.debug("Found %d first-option candidates", len(anchors))

    claimed: Set[int] = set()
    blocks: List[QuestionBlock] = []
    for anchor in anchors:
        grid = find_options_grid(anchor, markers, max_depth)
        if grid is None:
            logger.debug(
                "No complete option group above %r; skipping",
                visible_text(anchor)[:40],
            )
            continue
        container = resolve_container(grid)
        if container is None or id(container) in claimed:
            continue
        claimed.add(id(container))
        blocks.append(QuestionBlock(container=container, grid=grid, anchor=anchor))
    return blocks
