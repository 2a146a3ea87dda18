import pytest

from mcq_scraper.utils import (
    default_filename,
    exam_id_from_url,
    is_teacher_mode,
    json_filename,
    normalize_question_text,
    output_name,
    sanitize_filename,
)


class TestNormalizeQuestionText:
    """Tests for ordinal-prefix stripping and whitespace collapsing"""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1. What is blood?", "What is blood?"),
            ("12 . What   is\n blood?", "What is blood?"),
            ("৩। রক্তের রং কী?", "রক্তের রং কী?"),
            ("  4.\tSpaces  everywhere  ", "Spaces everywhere"),
            ("3.5 litres of blood", "3.5 litres of blood"),
            ("No prefix here", "No prefix here"),
        ],
    )
    def test_normalizes(self, raw, expected):
        """Should strip the leading ordinal and collapse whitespace"""
        assert normalize_question_text(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["1. 2. Nested prefixes", "5. 3.14 is pi", "  7 ।  Bengali danda  ", ""],
    )
    def test_is_idempotent(self, raw):
        """Should be a no-op on already-normalized text"""
        once = normalize_question_text(raw)
        assert normalize_question_text(once) == once


class TestFilenames:
    def test_json_filename_enforces_single_suffix(self):
        """Should strip an existing .json suffix before reapplying it"""
        assert json_filename("Blood") == "Blood.json"
        assert json_filename("Blood.json") == "Blood.json"
        assert json_filename("Blood.JSON") == "Blood.json"

    def test_sanitize_filename_keeps_bengali(self):
        """Should keep Bengali letters and replace unsafe characters"""
        assert sanitize_filename("রক্ত সংবহন/1") == "রক্ত_সংবহন_1"

    def test_default_filename_from_title(self):
        """Should dash-join the cleaned exam title"""
        assert default_filename("Blood Circulation: Part 1!", "abc") == "Blood-Circulation-Part-1"

    def test_default_filename_falls_back_to_exam_id(self):
        """Should use the exam id when the title has nothing usable"""
        assert default_filename("!!!", "Fk2tL47QYi") == "exam-Fk2tL47QYi"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Unit 3/Heart", "Unit_3_Heart"),
            ("../../escaped.json", "escaped"),
            ("..", "fallback"),
            ("  ", "fallback"),
            ("রক্ত.JSON", "রক্ত"),
        ],
    )
    def test_output_name_is_a_single_path_component(self, value, expected):
        """Should never let a chosen name contain a separator or parent reference"""
        assert output_name(value, "fallback") == expected


class TestExamUrl:
    def test_exam_id_is_last_path_segment(self):
        """Should take the last non-empty path segment"""
        assert exam_id_from_url("https://www.example.com/exam/Fk2tL47QYi/?teacher=true") == "Fk2tL47QYi"

    def test_teacher_mode_only_when_in_query(self):
        """Should detect teacher=true only from the query string"""
        assert is_teacher_mode("https://x.test/exam/a?teacher=true") is True
        assert is_teacher_mode("https://x.test/exam/a") is False
        assert is_teacher_mode("https://x.test/exam/teacher=true") is False
