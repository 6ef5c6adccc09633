import pytest

from downloader.sanitize import FORBIDDEN_CHARS, sanitize_filename

SAMPLES = [
    "Report: Q1/Q2\\Draft",
    "  padded title  ",
    'a<b>c:d"e/f\\g|h?i*j',
    "line one\nline two\r\n",
    "\n  - leading hyphen after break",
    "",
    "   ",
    "already-safe",
    "标题：测试/文章",
]


def test_sanitize_replaces_forbidden_characters():
    assert sanitize_filename("Report: Q1/Q2\\Draft") == "Report- Q1-Q2-Draft"


def test_sanitize_strips_line_breaks_and_whitespace():
    assert sanitize_filename("  Weekly\r\n digest \n") == "Weekly digest"


def test_sanitize_empty_input():
    assert sanitize_filename("") == ""
    assert sanitize_filename(" \n ") == ""


@pytest.mark.parametrize("raw", SAMPLES)
def test_sanitize_is_idempotent(raw):
    once = sanitize_filename(raw)
    assert sanitize_filename(once) == once


@pytest.mark.parametrize("raw", SAMPLES)
def test_sanitize_output_has_no_forbidden_characters(raw):
    result = sanitize_filename(raw)
    for char in FORBIDDEN_CHARS + ("\r", "\n"):
        assert char not in result
