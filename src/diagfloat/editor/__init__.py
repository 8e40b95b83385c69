"""Editor-side formatting, layout and syntax helpers for the overlay."""

from . import formatter, layout

__all__ = ["formatter", "layout"]
