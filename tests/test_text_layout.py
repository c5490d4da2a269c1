"""Tests for greedy word wrapping."""
import pytest

from badgegen.utils.fonts import load_font
from badgegen.utils.text_layout import measure_with, wrap_text


def per_char(px):
    return lambda text: len(text) * px


def test_name_zone_wraps_on_char_limit_and_width():
    # 5% font on a 1000x1600 canvas, zone 45% wide => 450px
    lines = wrap_text("Jean-Baptiste Rousseau", 450, 16, per_char(30))
    assert len(lines) >= 2
    assert all(len(line) <= 16 for line in lines)
    assert all(len(line) * 30 <= 450 for line in lines)
    assert lines == ["Jean-Baptiste", "Rousseau"]


def test_width_limit_alone_breaks_lines():
    lines = wrap_text("aa bb cc dd", 50, None, per_char(10))
    assert lines == ["aa bb", "cc dd"]


def test_single_long_word_is_never_split():
    lines = wrap_text("Supercalifragilistic ok", 50, 5, per_char(10))
    assert lines == ["Supercalifragilistic", "ok"]


def test_empty_and_whitespace_text_gives_no_lines():
    assert wrap_text("", 100) == []
    assert wrap_text("   \t ", 100) == []
    assert wrap_text(None, 100) == []


def test_whitespace_runs_collapse():
    assert wrap_text("a   b\n c", 1000, None, per_char(1)) == ["a b c"]


def test_zero_max_chars_means_no_char_limit():
    assert wrap_text("one two three", 10_000, 0, per_char(1)) == ["one two three"]


@pytest.mark.parametrize("text", [
    "Marie-Claire Obiang Ndong Essono",
    "Organisation des Nations Unies pour le développement",
    "a b c d e f g h i j k l m n o p",
])
def test_real_font_lines_fit_width(text):
    font = load_font("Roboto", "bold", 40)
    measure = measure_with(font)
    max_width = 300
    for line in wrap_text(text, max_width, 18, measure):
        assert len(line) <= 18 or " " not in line
        assert measure(line) <= max_width or " " not in line
