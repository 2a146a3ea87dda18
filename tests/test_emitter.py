import base64
import json
import zipfile
from unittest.mock import Mock

import requests

from mcq_scraper.emitter import (
    emit_to_disk,
    emit_to_endpoint,
    find_local_port,
    records_to_json,
)
from mcq_scraper.models import AssetBundle, QuestionRecord
from mcq_scraper.runlog import RunLog


def record(index=1, image=None):
    return QuestionRecord(
        id=index,
        subject="জীববিজ্ঞান",
        question=f"Question {index}?",
        options={"a": "1", "b": "2", "c": "3", "d": "4"},
        correct_answer="c",
        explanation="",
        has_diagram=image is not None,
        image=image,
        local_images=[image] if image else [],
        original_image_url=None,
        svg_code="",
    )


def probe(status):
    return Mock(status_code=status)


class TestFindLocalPort:
    def test_first_port_below_500_wins(self):
        """Should skip refused and failing ports"""
        session = Mock()
        session.options.side_effect = [
            requests.ConnectionError("refused"),
            probe(502),
            probe(404),
        ]
        assert find_local_port(session, (3000, 51007, 5173, 4173)) == 5173
        session.options.assert_called_with("http://localhost:5173/api/save-questions", timeout=0.8)

    def test_no_answer_falls_back_to_first_port(self):
        session = Mock()
        session.options.side_effect = requests.ConnectionError("refused")
        assert find_local_port(session, (3000, 51007)) == 3000


class TestEmitToEndpoint:
    """Tests for the local save endpoint and its file fallback"""

    def test_successful_post(self, tmp_path):
        """Should POST filename, questions and images, then report the saved file"""
        session = Mock()
        session.options.return_value = probe(204)
        session.post.return_value.json.return_value = {
            "success": True,
            "file": "public/blood.json",
            "imagesSaved": ["q1_img1.png"],
        }
        bundle = AssetBundle({"q1_img1.png": "data:image/png;base64,AAAA"})
        log = RunLog()

        result = emit_to_endpoint([record()], bundle, "blood.json", tmp_path, session, log=log)

        assert result.saved and not result.via_fallback
        assert result.location == "public/blood.json"
        assert result.images_saved == ["q1_img1.png"]
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "http://localhost:3000/api/save-questions"
        assert payload["filename"] == "blood.json"
        assert payload["questions"][0]["correctAnswer"] == "c"
        assert payload["images"] == dict(bundle)
        assert log.events[-1].tag == "DONE"
        assert list(tmp_path.iterdir()) == []

    def test_rejected_post_falls_back_to_file(self, tmp_path):
        """Should write the JSON and decoded images locally when the server refuses"""
        session = Mock()
        session.options.return_value = probe(200)
        session.post.return_value.json.return_value = {"success": False, "error": "disk full"}
        png = b"\x89PNG\r\n\x1a\nrest"
        bundle = AssetBundle(
            {"q1_img1.png": "data:image/png;base64," + base64.b64encode(png).decode()}
        )
        log = RunLog()

        result = emit_to_endpoint([record()], bundle, "blood", tmp_path, session, log=log)

        assert result.via_fallback
        assert result.saved is False
        written = tmp_path / "blood.json"
        assert result.location == str(written)
        assert json.loads(written.read_text(encoding="utf-8"))[0]["subject"] == "জীববিজ্ঞান"
        assert (tmp_path / "images" / "q1_img1.png").read_bytes() == png
        assert any("disk full" in event.text for event in log.events if event.tag == "WARN")
        assert log.events[-1].tag == "DONE"

    def test_unreachable_server_falls_back(self, tmp_path):
        session = Mock()
        session.options.side_effect = requests.ConnectionError("refused")
        session.post.side_effect = requests.ConnectionError("refused")

        result = emit_to_endpoint([record()], AssetBundle(), "blood", tmp_path, session)

        assert result.via_fallback
        assert (tmp_path / "blood.json").exists()
        assert not (tmp_path / "images").exists()


class TestEmitToDisk:
    def test_json_is_readable_utf8(self, tmp_path):
        """Should keep Bengali text unescaped and use the camelCase keys"""
        emit_to_disk([record()], "blood", tmp_path)

        text = (tmp_path / "blood.json").read_text(encoding="utf-8")
        assert "জীববিজ্ঞান" in text
        assert json.loads(text)[0]["hasDiagram"] is False
        assert text == records_to_json([record()])

    def test_zip_contains_json_and_images(self, tmp_path):
        """Should archive the JSON and images with paths relative to the output"""
        images_dir = tmp_path / "images"
        images_dir.mkdir()
        image = images_dir / "q1_img1.png"
        image.write_bytes(b"png")

        result = emit_to_disk(
            [record(image="/images/q1_img1.png")],
            "blood.json",
            tmp_path,
            image_paths=[image],
            create_zip=True,
        )

        assert result.images_saved == ["q1_img1.png"]
        with zipfile.ZipFile(tmp_path / "blood.zip") as archive:
            assert sorted(archive.namelist()) == ["blood.json", "images/q1_img1.png"]

    def test_no_zip_without_images(self, tmp_path):
        emit_to_disk([record()], "blood", tmp_path, create_zip=True)
        assert not (tmp_path / "blood.zip").exists()
