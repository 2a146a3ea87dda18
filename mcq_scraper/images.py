"""Image naming, downloading and encoding for question diagrams."""

from __future__ import annotations

import base64
import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import requests
from filetype import guess

from .config import DEFAULT_IMAGE_EXTENSION
from .models import AssetBundle, RawExtraction
from .runlog import RunLog

logger = logging.getLogger("mcq_scraper.images")

LOCAL_IMAGE_PREFIX = "/images"
CHUNK_SIZE = 64 * 1024
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@dataclass
class PlannedImage:
    """An image URL paired with the local file it should end up in."""

    question_index: int
    image_index: int
    url: str
    filename: str

    @property
    def local_path(self) -> str:
        return f"{LOCAL_IMAGE_PREFIX}/{self.filename}"


def image_extension(url: str, default: str = DEFAULT_IMAGE_EXTENSION) -> str:
    """Extension of the URL's path, ignoring the query string."""
    suffix = posixpath.splitext(urlparse(url).path)[1].lstrip(".").lower()
    return suffix or default


def image_filename(
    question_index: int,
    image_index: int,
    url: str,
    default: str = DEFAULT_IMAGE_EXTENSION,
) -> str:
    return f"q{question_index + 1}_img{image_index + 1}.{image_extension(url, default)}"


def plan_images(
    extractions: Sequence[RawExtraction],
    default_extension: str = DEFAULT_IMAGE_EXTENSION,
) -> List[PlannedImage]:
    """Assign every image a deterministic local path on its question.

    Paths are recorded before anything is downloaded so the JSON always
    references a file a human can supply by hand.
    """
    planned: List[PlannedImage] = []
    for q_index, raw in enumerate(extractions):
        raw.local_images = []
        raw.original_image_url = raw.image_urls[0] if raw.image_urls else None
        for i_index, url in enumerate(raw.image_urls):
            item = PlannedImage(
                question_index=q_index,
                image_index=i_index,
                url=url,
                filename=image_filename(q_index, i_index, url, default_extension),
            )
            raw.local_images.append(item.local_path)
            planned.append(item)
    return planned


def mime_type_for(data: bytes, filename: str) -> str:
    kind = guess(data)
    if kind is not None:
        return kind.mime
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def to_data_url(data: bytes, filename: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type_for(data, filename)};base64,{encoded}"


def download_to_file(
    session: requests.Session,
    url: str,
    destination: Path,
    timeout: float = 15.0,
) -> Path:
    """Stream ``url`` into ``destination``; redirects are followed by requests."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        with session.get(
            url, headers={"User-Agent": USER_AGENT}, timeout=timeout, stream=True
        ) as resp:
            resp.raise_for_status()
            with destination.open("wb") as handle:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
    except (requests.RequestException, OSError):
        destination.unlink(missing_ok=True)
        raise
    return destination


def fetch_bytes(session: requests.Session, url: str, timeout: float = 15.0) -> bytes:
    resp = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    resp.raise_for_status()
    return resp.content


def materialize_to_disk(
    extractions: Sequence[RawExtraction],
    images_dir: Path,
    session: Optional[requests.Session] = None,
    timeout: float = 15.0,
    default_extension: str = DEFAULT_IMAGE_EXTENSION,
    log: Optional[RunLog] = None,
) -> List[Path]:
    """Download every planned image into ``images_dir``, one at a time."""
    log = log or RunLog()
    session = session or requests.Session()
    saved: List[Path] = []
    for item in plan_images(extractions, default_extension):
        destination = images_dir / item.filename
        try:
            download_to_file(session, item.url, destination, timeout)
        except (requests.RequestException, OSError) as exc:
            log.warn(
                f"Q{item.question_index + 1} image download failed: {exc}. "
                f"Place it manually at {item.local_path}"
            )
            continue
        saved.append(destination)
        log.append_line(f"Downloaded: {item.filename}", "IMG")
    return saved


def materialize_to_bundle(
    extractions: Sequence[RawExtraction],
    session: Optional[requests.Session] = None,
    timeout: float = 15.0,
    default_extension: str = DEFAULT_IMAGE_EXTENSION,
    log: Optional[RunLog] = None,
) -> AssetBundle:
    """Download every planned image and encode it as a ``data:`` URL."""
    log = log or RunLog()
    session = session or requests.Session()
    bundle = AssetBundle()
    for item in plan_images(extractions, default_extension):
        try:
            data = fetch_bytes(session, item.url, timeout)
        except requests.RequestException as exc:
            log.warn(
                f"Q{item.question_index + 1} image fetch blocked: {exc}. "
                "You can manually download the image."
            )
            continue
        if guess(data) is None:
            logger.debug("%s does not look like an image", item.url)
        bundle[item.filename] = to_data_url(data, item.filename)
        log.append_line(f"Downloaded: {item.filename}", "IMG")
    return bundle
