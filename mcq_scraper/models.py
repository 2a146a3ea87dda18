"""Data models used throughout the scraping pipeline."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

OPTION_KEYS = ("a", "b", "c", "d")


@dataclass
class ExamPage:
    """Facts about the exam page itself, derived from its location and title."""

    url: str
    exam_id: str
    teacher_mode: bool
    title: str


@dataclass
class RawExtraction:
    """Per-question data scraped from the DOM, before reconciliation."""

    question: str = ""
    options: Dict[str, str] = field(default_factory=dict)
    correct_answer: Optional[str] = None
    explanation: str = ""
    image_urls: List[str] = field(default_factory=list)
    svg_code: str = ""
    local_images: List[str] = field(default_factory=list)
    original_image_url: Optional[str] = None


@dataclass
class QuestionRecord:
    """Canonical output unit consumed by the exam and admin applications."""

    id: int
    subject: str
    question: str
    options: Dict[str, str]
    correct_answer: Optional[str]
    explanation: str
    has_diagram: bool
    image: Optional[str]
    local_images: List[str]
    original_image_url: Optional[str]
    svg_code: str
    topic: str = ""

    @classmethod
    def from_extraction(
        cls, index: int, subject: str, raw: RawExtraction
    ) -> "QuestionRecord":
        return cls(
            id=index + 1,
            subject=subject,
            question=raw.question,
            options=dict(raw.options),
            correct_answer=raw.correct_answer,
            explanation=raw.explanation or "",
            has_diagram=bool(raw.local_images) or bool(raw.svg_code),
            image=raw.local_images[0] if raw.local_images else None,
            local_images=list(raw.local_images),
            original_image_url=raw.original_image_url,
            svg_code=raw.svg_code or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject": self.subject,
            "question": self.question,
            "options": dict(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
            "hasDiagram": self.has_diagram,
            "image": self.image,
            "localImages": list(self.local_images),
            "originalImageUrl": self.original_image_url,
            "svg_code": self.svg_code,
            "topic": self.topic,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionRecord":
        return cls(
            id=data["id"],
            subject=data["subject"],
            question=data["question"],
            options=dict(data["options"]),
            correct_answer=data.get("correctAnswer"),
            explanation=data.get("explanation", ""),
            has_diagram=data.get("hasDiagram", False),
            image=data.get("image"),
            local_images=list(data.get("localImages") or []),
            original_image_url=data.get("originalImageUrl"),
            svg_code=data.get("svg_code", ""),
            topic=data.get("topic", ""),
        )


class AssetBundle(Dict[str, str]):
    """Local filename mapped to a ``data:`` URL, owned by a single run."""


@dataclass
class SaveResult:
    """Outcome of handing the records to a persistence target.

    ``saved`` is False when the endpoint refused the records and they were
    written locally instead.
    """

    saved: bool
    location: str
    images_saved: List[str] = field(default_factory=list)
    via_fallback: bool = False


@dataclass
class LogEvent:
    """A single timestamped line in the run log."""

    tag: str
    text: str
    timestamp: dt.datetime = field(default_factory=dt.datetime.now)

    def format(self) -> str:
        return f"{self.timestamp:%H:%M:%S} [{self.tag}] {self.text}"
