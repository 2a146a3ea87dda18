import json
from pathlib import Path
from unittest.mock import patch

import pytest

from mcq_scraper.cli import build_config, main, parse_args


class TestParseArgs:
    def test_bare_url_defaults_to_scrape(self):
        """Should treat a bare URL as the scrape command"""
        args = parse_args(["https://www.example.com/exam/abc", "--zip"])
        assert args.command == "scrape"
        assert args.url == "https://www.example.com/exam/abc"
        assert args.zip is True
        assert args.mode == "disk"

    def test_extract_requires_url(self):
        with pytest.raises(SystemExit):
            parse_args(["extract", "snapshot.html"])

    def test_build_config(self, tmp_path):
        args = parse_args(
            [
                "scrape",
                "https://www.example.com/exam/abc",
                "--output",
                str(tmp_path),
                "--mode",
                "endpoint",
                "--align",
                "similarity",
                "--max-depth",
                "6",
                "--no-api",
                "--timeout",
                "30",
            ]
        )

        config = build_config(args)

        assert config.output_root == tmp_path.resolve()
        assert config.images_dir == tmp_path.resolve() / "images"
        assert config.emit_mode == "endpoint"
        assert config.align == "similarity"
        assert config.max_depth == 6
        assert config.use_answer_api is False
        assert config.navigation_timeout == 30.0


@patch("mcq_scraper.cli._configure_logging")
class TestMain:
    """Tests for running the extract command end to end"""

    def _snapshot(self, tmp_path: Path, html: str) -> Path:
        path = tmp_path / "snapshot.html"
        path.write_text(html, encoding="utf-8")
        return path

    def test_extract_writes_named_json(self, _logging, tmp_path, three_question_page):
        """Should write the JSON under the requested name and exit cleanly"""
        snapshot = self._snapshot(tmp_path, three_question_page)
        out = tmp_path / "public"

        with pytest.raises(SystemExit) as exc:
            main(
                [
                    "extract",
                    str(snapshot),
                    "--url",
                    "https://www.example.com/exam/Fk2tL47QYi",
                    "--output",
                    str(out),
                    "--name",
                    "heart",
                    "--subject",
                    "Biology",
                    "--no-api",
                ]
            )

        assert exc.value.code == 0
        records = json.loads((out / "heart.json").read_text(encoding="utf-8"))
        assert len(records) == 3
        assert records[1]["subject"] == "Biology"

    def test_missing_snapshot_exits_with_error(self, _logging, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["extract", str(tmp_path / "missing.html"), "--url", "https://x.test/exam/a"])
        assert exc.value.code == 1

    def test_unknown_signal_exits_with_error(self, _logging, tmp_path, three_question_page):
        snapshot = self._snapshot(tmp_path, three_question_page)
        with pytest.raises(SystemExit) as exc:
            main(["extract", str(snapshot), "--url", "https://x.test/exam/a", "--signals", "sound"])
        assert exc.value.code == 1
