"""Tests for overlay sizing."""

from __future__ import annotations

import pytest

from diagfloat.editor.layout import OverlaySize, char_width, compute_size, display_width


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", 0),
        ("abc", 3),
        ("日本", 4),
        ("é", 1),
        ("a\u200bb", 2),
        ("e\u0301", 1),
        ("\x01", 2),
    ],
)
def test_display_width(text: str, expected: int) -> None:
    assert display_width(text) == expected


def test_tabs_expand_to_next_stop() -> None:
    assert display_width("\t") == 8
    assert display_width("ab\tc") == 9
    assert display_width("ab\tc", tab_width=4) == 5


def test_char_width_of_wide_and_narrow() -> None:
    assert char_width("Ａ") == 2
    assert char_width("A") == 1


def test_compute_size_uses_widest_line_and_line_count() -> None:
    size = compute_size(["E ts(2322)", "Type `string` is wrong.", ""])

    assert size == OverlaySize(width=23, height=3)
    width, height = size
    assert (width, height) == (23, 3)


def test_compute_size_caps_width_but_not_height() -> None:
    lines = ["x" * 200] + ["y"] * 50

    size = compute_size(lines, max_width=80)

    assert size.width == 80
    assert size.height == 51


def test_compute_size_of_nothing() -> None:
    assert compute_size([]) == OverlaySize(0, 0)
