"""Overlay the remote answer key onto DOM extractions."""

from __future__ import annotations

import json
import logging
import re
from difflib import SequenceMatcher
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import requests
from bs4 import BeautifulSoup

from .locator import OPTION_MARKERS
from .models import OPTION_KEYS, ExamPage, RawExtraction
from .runlog import RunLog
from .utils import normalize_question_text

logger = logging.getLogger("mcq_scraper.reconcile")

IMAGE_URL_PATTERN = re.compile(
    r"https?://[^\s\"'<>]+\.(?:png|jpg|jpeg|gif|webp|svg)", re.IGNORECASE
)
API_TEXT_FIELDS = ("question", "A", "B", "C", "D", "solution")
SIMILARITY_THRESHOLD = 0.6

ANSWER_ALIASES: Dict[str, str] = {key: key for key in OPTION_KEYS}
ANSWER_ALIASES.update(zip(OPTION_MARKERS, OPTION_KEYS))

Pairing = List[Tuple[int, Optional[int]]]


def answer_key_url(page: ExamPage, api_base: str) -> str:
    url = f"{api_base.rstrip('/')}/{page.exam_id}"
    if page.teacher_mode:
        url += "?teacher=true"
    return url


def parse_answer_key(payload: Any) -> List[Dict[str, Any]]:
    """Pull the per-question ``q`` objects out of an answer-key response.

    Anything that does not have the expected shape counts as no answers.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    exam = data.get("exam") if isinstance(data, dict) else None
    questions = exam.get("questions") if isinstance(exam, dict) else None
    if not isinstance(questions, list):
        return []
    parsed: List[Dict[str, Any]] = []
    for item in questions:
        q = item.get("q") if isinstance(item, dict) else None
        parsed.append(q if isinstance(q, dict) else {})
    return parsed


def fetch_answer_key(
    session: requests.Session,
    page: ExamPage,
    api_base: str,
    timeout: float = 20.0,
    log: Optional[RunLog] = None,
) -> List[Dict[str, Any]]:
    """Fetch the exam's answer key; failures are logged and yield no answers."""
    log = log or RunLog()
    url = answer_key_url(page, api_base)
    log.append_line("Fetching API for answers...", "NET")
    try:
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as exc:
        log.warn(f"API failed: {exc}")
        return []
    questions = parse_answer_key(payload)
    log.append_line(f"API: {len(questions)} answers fetched", "OK")
    return questions


def normalize_answer(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return ANSWER_ALIASES.get(value.strip().lower())


def api_image_urls(api_question: Dict[str, Any]) -> List[str]:
    """Image URLs embedded anywhere in the API record's text fields."""
    texts = [api_question.get(name) for name in API_TEXT_FIELDS]
    texts.append(json.dumps(api_question.get("meta") or {}, ensure_ascii=False))
    combined = " ".join(text for text in texts if isinstance(text, str) and text)
    return IMAGE_URL_PATTERN.findall(combined)


def api_explanation(api_question: Dict[str, Any]) -> str:
    meta = api_question.get("meta")
    value = meta.get("ai_explanation") if isinstance(meta, dict) else None
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("explanation"), str):
        return value["explanation"]
    return ""


def align_positional(dom_count: int, api_count: int) -> Pairing:
    return [(i, i if i < api_count else None) for i in range(dom_count)]


def _plain(text: Any) -> str:
    if not isinstance(text, str):
        return ""
    return normalize_question_text(
        BeautifulSoup(text, "html.parser").get_text(" ")
    )


def align_by_similarity(
    extractions: Sequence[RawExtraction],
    api_questions: Sequence[Dict[str, Any]],
    threshold: float = SIMILARITY_THRESHOLD,
) -> Pairing:
    """Pair questions by normalized text similarity, best matches first.

    Questions left unmatched fall back to their positional partner only when
    both lists have the same length.
    """
    api_texts = [_plain(q.get("question")) for q in api_questions]
    candidates: List[Tuple[float, int, int]] = []
    for i, raw in enumerate(extractions):
        dom_text = normalize_question_text(raw.question)
        if not dom_text:
            continue
        for j, api_text in enumerate(api_texts):
            if not api_text:
                continue
            ratio = SequenceMatcher(None, dom_text, api_text).ratio()
            if ratio >= threshold:
                candidates.append((ratio, i, j))

    matched: Dict[int, int] = {}
    used: Set[int] = set()
    for _, i, j in sorted(candidates, key=lambda item: (-item[0], item[1], item[2])):
        if i in matched or j in used:
            continue
        matched[i] = j
        used.add(j)

    same_length = len(extractions) == len(api_questions)
    pairing: Pairing = []
    for i in range(len(extractions)):
        partner = matched.get(i)
        if partner is None and same_length and i not in used:
            partner = i
            used.add(i)
        pairing.append((i, partner))
    return pairing


def reconcile(
    extractions: List[RawExtraction],
    api_questions: Sequence[Dict[str, Any]],
    align: str = "positional",
    log: Optional[RunLog] = None,
) -> List[RawExtraction]:
    """Merge the answer key into ``extractions`` in place and return them.

    The API's answer letter wins over the DOM signal; images and a missing
    explanation are filled from the API record.
    """
    log = log or RunLog()
    if api_questions and len(api_questions) != len(extractions):
        log.warn(
            f"Reconciliation count mismatch: {len(extractions)} DOM questions vs "
            f"{len(api_questions)} API questions"
        )

    if align == "similarity":
        pairing = align_by_similarity(extractions, api_questions)
    elif align == "positional":
        pairing = align_positional(len(extractions), len(api_questions))
    else:
        raise ValueError(f"Unknown alignment mode: {align}")

    for i, j in pairing:
        raw = extractions[i]
        api_question = api_questions[j] if j is not None else {}

        for url in api_image_urls(api_question):
            if url not in raw.image_urls:
                raw.image_urls.append(url)

        if not raw.explanation:
            raw.explanation = api_explanation(api_question)

        api_answer = normalize_answer(api_question.get("answer"))
        if api_answer and raw.correct_answer and api_answer != raw.correct_answer:
            logger.debug(
                "Q%d: API answer %s overrides DOM answer %s",
                i + 1,
                api_answer,
                raw.correct_answer,
            )
        raw.correct_answer = api_answer or raw.correct_answer or None
    return extractions
