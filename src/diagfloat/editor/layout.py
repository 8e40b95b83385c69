"""Overlay sizing helpers based on terminal-style display widths."""

from __future__ import annotations

import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_MAX_WIDTH = 80
DEFAULT_TAB_WIDTH = 8


@dataclass(slots=True, frozen=True)
class OverlaySize:
    """Panel dimensions in character cells."""

    width: int
    height: int

    def __iter__(self):
        yield self.width
        yield self.height


def char_width(char: str) -> int:
    """Return the number of cells ``char`` occupies (tabs excluded)."""

    if unicodedata.combining(char):
        return 0
    category = unicodedata.category(char)
    if category in ("Mn", "Me", "Cf"):
        return 0
    if category == "Cc":
        # Control characters render as caret notation, e.g. ``^A``.
        return 2
    if unicodedata.east_asian_width(char) in ("W", "F"):
        return 2
    return 1


def display_width(text: str, *, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
    """Return the rendered width of ``text``, expanding tabs to ``tab_width`` stops."""

    width = 0
    for char in text:
        if char == "\t":
            stop = max(1, tab_width)
            width += stop - (width % stop)
            continue
        width += char_width(char)
    return width


def compute_size(
    lines: Sequence[str],
    max_width: int = DEFAULT_MAX_WIDTH,
    *,
    tab_width: int = DEFAULT_TAB_WIDTH,
) -> OverlaySize:
    """Size a panel for ``lines``: widest line capped at ``max_width``, one row per line.

    Height is deliberately uncapped; long lines wrap inside the panel instead
    of widening it.
    """

    width = 0
    for line in lines:
        line_width = display_width(line, tab_width=tab_width)
        if line_width > width:
            width = line_width
    return OverlaySize(width=min(width, max_width), height=len(lines))


__all__ = ["OverlaySize", "char_width", "compute_size", "display_width"]
