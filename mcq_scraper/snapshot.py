"""Document snapshots: rendered HTML stamped with what only the browser knows."""

from __future__ import annotations

from typing import Tuple

from bs4 import BeautifulSoup, Tag

from .signals import COMPUTED_BG_ATTR

RECT_WIDTH_ATTR = "data-rect-width"
RECT_HEIGHT_ATTR = "data-rect-height"
RESOLVED_SRC_ATTR = "data-resolved-src"
SNAPSHOT_ATTRS: Tuple[str, ...] = (
    COMPUTED_BG_ATTR,
    RECT_WIDTH_ATTR,
    RECT_HEIGHT_ATTR,
    RESOLVED_SRC_ATTR,
)

TITLE_SELECTOR = 'h1, h2, [class*="title"], [class*="heading"]'

# Run inside the page before reading its HTML.
STAMP_SCRIPT = f"""
() => {{
  for (const el of document.body.querySelectorAll('*')) {{
    const bg = window.getComputedStyle(el).backgroundColor;
    if (bg && bg !== 'rgba(0, 0, 0, 0)' && bg !== 'transparent') {{
      el.setAttribute('{COMPUTED_BG_ATTR}', bg);
    }}
  }}
  for (const svg of document.querySelectorAll('svg')) {{
    const rect = svg.getBoundingClientRect();
    svg.setAttribute('{RECT_WIDTH_ATTR}', String(Math.round(rect.width)));
    svg.setAttribute('{RECT_HEIGHT_ATTR}', String(Math.round(rect.height)));
  }}
  for (const img of document.querySelectorAll('img')) {{
    if (img.src) img.setAttribute('{RESOLVED_SRC_ATTR}', img.src);
  }}
  return document.querySelectorAll('*').length;
}}
"""


def load_snapshot(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def page_title(soup: BeautifulSoup, default: str = "Exam") -> str:
    """First line of the first heading-like element."""
    heading = soup.select_one(TITLE_SELECTOR)
    if heading is None:
        return default
    lines = [line.strip() for line in heading.get_text("\n").splitlines()]
    lines = [line for line in lines if line]
    return lines[0] if lines else default


def strip_snapshot_attributes(tag: Tag) -> Tag:
    """Remove stamped attributes from ``tag`` and its descendants in place."""
    for node in [tag, *tag.find_all(True)]:
        for attr in SNAPSHOT_ATTRS:
            if attr in node.attrs:
                del node.attrs[attr]
    return tag


def rendered_size(tag: Tag) -> Tuple[float, float]:
    def _read(attr: str) -> float:
        try:
            return float(tag.get(attr) or 0)
        except (TypeError, ValueError):
            return 0.0

    return _read(RECT_WIDTH_ATTR), _read(RECT_HEIGHT_ATTR)
