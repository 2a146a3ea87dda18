"""Configuration objects and constants for the scraper."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

DEFAULT_ANSWER_API_BASE = "https://tarek.chorcha.net/exam"
DEFAULT_LOCAL_PORTS: Tuple[int, ...] = (3000, 51007, 5173, 4173)
SAVE_ENDPOINT_PATH = "/api/save-questions"
DEFAULT_MAX_DEPTH = 10
DEFAULT_IMAGE_EXTENSION = "png"

EMIT_MODES = ("disk", "endpoint")
ALIGN_MODES = ("positional", "similarity")


@dataclass
class ScrapeConfig:
    """Top-level settings that control page rendering, extraction and output."""

    output_root: Path
    wait_after_load: float = 1.0
    navigation_timeout: float = 60.0
    scroll_step: int = 400
    scroll_delay: float = 0.06
    settle_delay: float = 0.8
    max_depth: int = DEFAULT_MAX_DEPTH
    answer_api_base: str = DEFAULT_ANSWER_API_BASE
    use_answer_api: bool = True
    align: str = "positional"
    request_timeout: float = 20.0
    image_timeout: float = 15.0
    local_ports: Tuple[int, ...] = field(default_factory=lambda: DEFAULT_LOCAL_PORTS)
    probe_timeout: float = 0.8
    default_image_extension: str = DEFAULT_IMAGE_EXTENSION
    emit_mode: str = "disk"
    create_zip: bool = False

    @property
    def images_dir(self) -> Path:
        return self.output_root / "images"
