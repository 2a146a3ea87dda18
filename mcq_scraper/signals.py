"""Visual-signal classifiers used to tell correct options and explanation boxes apart.

The browser stamps each element's computed background colour into the
snapshot as ``data-computed-bg`` (see :mod:`mcq_scraper.crawler`), so the
classifiers here only ever look at attributes of a parsed tag.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Sequence, Tuple

from bs4 import Tag

COMPUTED_BG_ATTR = "data-computed-bg"

# Tailwind green-500/600/700/400, teal-500 and emerald-500.
CORRECT_RGB_FRAGMENTS: Tuple[str, ...] = (
    "34, 197, 94",
    "22, 163, 74",
    "21, 128, 61",
    "74, 222, 128",
    "20, 184, 166",
    "16, 185, 129",
)
CORRECT_CLASS_TOKENS: Tuple[str, ...] = ("green", "correct", "success")

# Light green/teal/emerald tints (50/100 shades) used for solution boxes.
EXPLANATION_RGB_FRAGMENTS: Tuple[str, ...] = (
    "240, 253",
    "220, 252",
    "209, 250",
    "236, 253",
    "204, 251",
)
EXPLANATION_CLASS_TOKENS: Tuple[str, ...] = ("green", "explanation")


def class_string(tag: Tag) -> str:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        return classes
    return " ".join(classes)


def background_of(tag: Tag) -> str:
    return str(tag.get(COMPUTED_BG_ATTR) or "")


def _contains_any(value: str, fragments: Iterable[str]) -> bool:
    return any(fragment in value for fragment in fragments)


class VisualSignalClassifier(ABC):
    """Decides whether an element visually marks a correct answer or a solution."""

    @abstractmethod
    def is_correct_option(self, tag: Tag) -> bool:
        """Return True when ``tag`` is an option rendered as the correct one."""

    @abstractmethod
    def is_explanation_box(self, tag: Tag) -> bool:
        """Return True when ``tag`` is a highlighted explanation box."""


class ColorSignalClassifier(VisualSignalClassifier):
    """Match computed background colours and class names against known themes.

    Colours are matched as substrings of the ``rgb(...)`` string so that
    ``rgba`` variants and minor theme changes still classify.
    """

    def __init__(
        self,
        correct_colors: Sequence[str] = CORRECT_RGB_FRAGMENTS,
        correct_classes: Sequence[str] = CORRECT_CLASS_TOKENS,
        explanation_colors: Sequence[str] = EXPLANATION_RGB_FRAGMENTS,
        explanation_classes: Sequence[str] = EXPLANATION_CLASS_TOKENS,
    ) -> None:
        self.correct_colors = tuple(correct_colors)
        self.correct_classes = tuple(correct_classes)
        self.explanation_colors = tuple(explanation_colors)
        self.explanation_classes = tuple(explanation_classes)

    def is_correct_option(self, tag: Tag) -> bool:
        return _contains_any(background_of(tag), self.correct_colors) or _contains_any(
            class_string(tag), self.correct_classes
        )

    def is_explanation_box(self, tag: Tag) -> bool:
        return _contains_any(
            background_of(tag), self.explanation_colors
        ) or _contains_any(class_string(tag), self.explanation_classes)


class AttributeSignalClassifier(VisualSignalClassifier):
    """Use explicit data/ARIA attributes instead of colours."""

    CORRECT_ATTRIBUTES = ("data-correct", "aria-checked", "aria-pressed")

    def is_correct_option(self, tag: Tag) -> bool:
        return any(
            str(tag.get(attr, "")).lower() == "true"
            for attr in self.CORRECT_ATTRIBUTES
        )

    def is_explanation_box(self, tag: Tag) -> bool:
        return tag.has_attr("data-explanation") or tag.get("role") == "note"


class CompositeSignalClassifier(VisualSignalClassifier):
    """Classify positively when any of the wrapped classifiers does."""

    def __init__(self, classifiers: Sequence[VisualSignalClassifier]) -> None:
        if not classifiers:
            raise ValueError("CompositeSignalClassifier needs at least one classifier")
        self.classifiers = list(classifiers)

    def is_correct_option(self, tag: Tag) -> bool:
        return any(c.is_correct_option(tag) for c in self.classifiers)

    def is_explanation_box(self, tag: Tag) -> bool:
        return any(c.is_explanation_box(tag) for c in self.classifiers)


CLASSIFIERS = {
    "color": ColorSignalClassifier,
    "attributes": AttributeSignalClassifier,
}


def build_classifier(names: Sequence[str]) -> VisualSignalClassifier:
    """Create a classifier from names such as ``["color", "attributes"]``."""
    unknown = [name for name in names if name not in CLASSIFIERS]
    if unknown:
        raise ValueError(f"Unknown signal classifier(s): {', '.join(unknown)}")
    instances = [CLASSIFIERS[name]() for name in names]
    if len(instances) == 1:
        return instances[0]
    return CompositeSignalClassifier(instances)
