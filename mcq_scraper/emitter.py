"""Serialize question records and hand them to a persistence target."""

from __future__ import annotations

import base64
import json
import logging
import re
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import DEFAULT_LOCAL_PORTS, SAVE_ENDPOINT_PATH
from .models import AssetBundle, QuestionRecord, SaveResult
from .runlog import RunLog
from .utils import json_filename

logger = logging.getLogger("mcq_scraper.emitter")

DATA_URL_PATTERN = re.compile(r"^data:[^;]+;base64,(.+)$", re.DOTALL)


class EmitError(RuntimeError):
    """Raised when the save endpoint rejects or cannot accept the records."""


def records_to_json(records: Sequence[QuestionRecord]) -> str:
    return json.dumps(
        [record.to_dict() for record in records], indent=2, ensure_ascii=False
    )


def endpoint_url(port: int) -> str:
    return f"http://localhost:{port}{SAVE_ENDPOINT_PATH}"


def find_local_port(
    session: requests.Session,
    ports: Sequence[int] = DEFAULT_LOCAL_PORTS,
    timeout: float = 0.8,
) -> int:
    """Return the first port whose save endpoint answers a preflight below 500."""
    for port in ports:
        try:
            resp = session.options(endpoint_url(port), timeout=timeout)
        except requests.RequestException as exc:
            logger.debug("Port %d did not answer: %s", port, exc)
            continue
        if resp.status_code < 500:
            return port
    return ports[0]


def post_questions(
    session: requests.Session,
    url: str,
    filename: str,
    records: Sequence[QuestionRecord],
    images: AssetBundle,
    timeout: float = 20.0,
) -> Dict[str, Any]:
    payload = {
        "filename": filename,
        "questions": [record.to_dict() for record in records],
        "images": dict(images),
    }
    try:
        resp = session.post(url, json=payload, timeout=timeout)
        result = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise EmitError(str(exc)) from exc
    if not isinstance(result, dict) or not result.get("success"):
        error = result.get("error") if isinstance(result, dict) else None
        raise EmitError(error or "Unknown error")
    return result


def write_json(records: Sequence[QuestionRecord], output_dir: Path, filename: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / json_filename(filename)
    path.write_text(records_to_json(records), encoding="utf-8")
    return path


def write_bundle(images: AssetBundle, images_dir: Path) -> List[Path]:
    """Decode each ``data:`` URL of the bundle into ``images_dir``."""
    images_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for filename, data_url in images.items():
        match = DATA_URL_PATTERN.match(data_url)
        if not match:
            logger.warning("Skipping %s: not a base64 data URL", filename)
            continue
        path = images_dir / filename
        path.write_bytes(base64.b64decode(match.group(1)))
        written.append(path)
    return written


def write_zip(json_path: Path, image_paths: Sequence[Path], base_dir: Path) -> Path:
    """Archive the JSON file and its images, keeping paths relative to ``base_dir``."""
    zip_path = json_path.with_suffix(".zip")
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in [json_path, *image_paths]:
            archive.write(path, arcname=path.relative_to(base_dir).as_posix())
    return zip_path


def emit_to_endpoint(
    records: Sequence[QuestionRecord],
    images: AssetBundle,
    filename: str,
    output_dir: Path,
    session: Optional[requests.Session] = None,
    ports: Sequence[int] = DEFAULT_LOCAL_PORTS,
    probe_timeout: float = 0.8,
    log: Optional[RunLog] = None,
) -> SaveResult:
    """POST to the local save endpoint, falling back to a JSON file on failure."""
    log = log or RunLog()
    session = session or requests.Session()

    log.append_line("Saving to local server...", "SAVE")
    port = find_local_port(session, ports, probe_timeout)
    try:
        result = post_questions(
            session, endpoint_url(port), filename, records, images
        )
    except EmitError as exc:
        log.warn(f"Server save failed: {exc}")
    else:
        saved_images: List[str] = list(result.get("imagesSaved") or [])
        log.append_line(f"Saved -> {result.get('file')}", "OK")
        if saved_images:
            log.append_line(f"{len(saved_images)} images saved to public/images/", "OK")
        log.append_line("All done!", "DONE")
        return SaveResult(
            saved=True, location=str(result.get("file")), images_saved=saved_images
        )

    log.append_line("Falling back to writing the JSON locally...", "DOWN")
    path = write_json(records, output_dir, filename)
    log.append_line(f"Wrote {path}", "OK")
    if images:
        written = write_bundle(images, output_dir / "images")
        log.append_line(f"Wrote {len(written)} images to {output_dir / 'images'}", "OK")
    log.append_line("All done!", "DONE")
    return SaveResult(saved=False, location=str(path), via_fallback=True)


def emit_to_disk(
    records: Sequence[QuestionRecord],
    filename: str,
    output_dir: Path,
    image_paths: Sequence[Path] = (),
    create_zip: bool = False,
    log: Optional[RunLog] = None,
) -> SaveResult:
    """Write the JSON next to the already-downloaded images."""
    log = log or RunLog()
    path = write_json(records, output_dir, filename)
    log.append_line(f"JSON saved -> {path} ({len(records)} questions)", "SAVE")
    with_images = sum(1 for record in records if record.has_diagram)
    if with_images:
        log.append_line(f"{with_images} questions have diagrams", "INFO")

    location = str(path)
    if create_zip and image_paths:
        try:
            zip_path = write_zip(path, image_paths, output_dir)
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            log.warn(f"Could not create zip: {exc}")
        else:
            log.append_line(f"ZIP saved -> {zip_path}", "SAVE")
    log.append_line("All done!", "DONE")
    return SaveResult(
        saved=True,
        location=location,
        images_saved=[p.name for p in image_paths],
    )
