"""Run log and input prompting for the invoking surface."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from .models import LogEvent

logger = logging.getLogger("mcq_scraper")

TAG_LEVELS = {
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "DEBUG": logging.DEBUG,
}


class RunLog:
    """Timestamped log trail for a single scrape run.

    Every line is kept for the caller and forwarded to :mod:`logging`.
    """

    def __init__(
        self,
        target: Optional[logging.Logger] = None,
        sink: Optional[Callable[[LogEvent], None]] = None,
    ) -> None:
        self._logger = target or logger
        self._sink = sink
        self.events: List[LogEvent] = []

    def append_line(self, text: str, tag: str = "INFO") -> LogEvent:
        event = LogEvent(tag=tag, text=text)
        self.events.append(event)
        self._logger.log(TAG_LEVELS.get(tag, logging.INFO), "[%s] %s", tag, text)
        if self._sink is not None:
            self._sink(event)
        return event

    def warn(self, text: str) -> LogEvent:
        return self.append_line(text, "WARN")

    def has_warnings(self) -> bool:
        return any(event.tag == "WARN" for event in self.events)


def prompt_for_inputs(
    defaults: Dict[str, str],
    interactive: bool = False,
    ask: Callable[[str], str] = input,
) -> Dict[str, str]:
    """Return ``{"filename", "subject"}``, asking the user when interactive."""
    result = {
        "filename": defaults.get("filename", ""),
        "subject": defaults.get("subject", ""),
    }
    if not interactive:
        return result
    for key, label in (("filename", "Output filename"), ("subject", "Subject")):
        answer = ask(f"{label} [{result[key]}]: ").strip()
        if answer:
            result[key] = answer
    return result
