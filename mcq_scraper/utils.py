"""Utility helpers for text normalization and path handling."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

WHITESPACE_PATTERN = re.compile(r"\s+")
# One or more "12." / "12 ।" prefixes; a dot followed by a digit is a decimal, not a prefix.
ORDINAL_PREFIX_PATTERN = re.compile(r"^(?:\d+\s*[.\u0964](?!\d)\s*)+")
FILENAME_PATTERN = re.compile(r"[^a-zA-Z0-9\-_.\u0980-\u09FF]")
TITLE_PATTERN = re.compile(r"[^a-zA-Z0-9\u0980-\u09FF\s-]")


def collapse_whitespace(value: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", value).strip()


def normalize_question_text(value: str) -> str:
    """Strip the leading ordinal prefix and collapse whitespace.

    Applying this to its own output returns the same string.
    """
    text = collapse_whitespace(value)
    return ORDINAL_PREFIX_PATTERN.sub("", text).strip()


def sanitize_filename(value: str, limit: int = 80) -> str:
    """Replace characters that are unsafe in file names, keeping Bengali script."""
    return FILENAME_PATTERN.sub("_", value)[:limit]


def strip_json_suffix(filename: str) -> str:
    return re.sub(r"\.json$", "", filename, flags=re.IGNORECASE)


def output_name(value: str, fallback: str) -> str:
    """Chosen output name reduced to a single safe path component."""
    name = sanitize_filename(strip_json_suffix(value.strip())).strip("._")
    return name or fallback


def json_filename(filename: str) -> str:
    """Enforce exactly one ``.json`` suffix."""
    return f"{strip_json_suffix(filename)}.json"


def exam_id_from_url(url: str) -> str:
    segments = [part for part in urlparse(url).path.split("/") if part]
    return segments[-1] if segments else ""


def is_teacher_mode(url: str) -> bool:
    values = parse_qs(urlparse(url).query).get("teacher", [])
    return "true" in values


def default_filename(title: str, exam_id: str, limit: int = 50) -> str:
    """Generate an output name from the exam title, falling back to the exam id."""
    cleaned = TITLE_PATTERN.sub("", title).strip()
    cleaned = WHITESPACE_PATTERN.sub("-", cleaned)
    return (cleaned or f"exam-{exam_id or 'unknown'}")[:limit]
