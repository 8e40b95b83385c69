"""Theme registry and Qt palette helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from .models import ColorTuple, Theme

LOGGER = logging.getLogger(__name__)

_DARK_PALETTE: Dict[str, ColorTuple] = {
    "background": (30, 30, 30),
    "foreground": (212, 212, 212),
    "selection": (38, 79, 120),
    "selection_foreground": (255, 255, 255),
    "overlay_background": (37, 37, 38),
    "overlay_foreground": (220, 220, 220),
    "overlay_border": (69, 69, 74),
    "diagnostic_error": (245, 101, 101),
    "diagnostic_warn": (246, 173, 85),
    "diagnostic_info": (97, 175, 239),
    "diagnostic_hint": (150, 150, 150),
    "markdown_heading": (198, 120, 221),
    "markdown_code": (206, 145, 120),
    "markdown_code_background": (31, 31, 31),
}

_LIGHT_PALETTE: Dict[str, ColorTuple] = {
    "background": (255, 255, 255),
    "foreground": (33, 37, 41),
    "selection": (181, 215, 255),
    "selection_foreground": (32, 33, 36),
    "overlay_background": (248, 248, 248),
    "overlay_foreground": (32, 33, 36),
    "overlay_border": (202, 202, 204),
    "diagnostic_error": (220, 53, 69),
    "diagnostic_warn": (191, 135, 0),
    "diagnostic_info": (0, 123, 255),
    "diagnostic_hint": (120, 124, 130),
    "markdown_heading": (163, 21, 81),
    "markdown_code": (163, 21, 21),
    "markdown_code_background": (240, 240, 240),
}


def build_default_dark_theme() -> Theme:
    return Theme(
        name="default",
        title="Diagfloat Dark",
        description="Dark editor with a slightly raised overlay.",
        palette=_DARK_PALETTE,
        metadata={"qt_style": "Fusion", "appearance": "dark"},
    )


def build_light_theme() -> Theme:
    return Theme(
        name="daylight",
        title="Daylight",
        description="Light editor and overlay.",
        palette=_LIGHT_PALETTE,
        metadata={"qt_style": "Fusion", "appearance": "light"},
    )


class ThemeManager:
    """Registry resolving theme names to :class:`Theme` instances."""

    def __init__(self, themes: Iterable[Theme] | None = None, *, default_name: str = "default") -> None:
        self._themes: Dict[str, Theme] = {}
        self._default_name = default_name.lower()
        for theme in themes or ():
            self.register(theme)
        if not self._themes:
            self.register(build_default_dark_theme())
        if self._default_name not in self._themes:
            self._default_name = next(iter(self._themes))

    def register(self, theme: Theme, *, overwrite: bool = True) -> None:
        key = theme.name.lower()
        if not overwrite and key in self._themes:
            raise ValueError(f"Theme '{theme.name}' already registered")
        self._themes[key] = theme

    def available_names(self) -> List[str]:
        return sorted(self._themes)

    def resolve(self, theme: Theme | str | None = None) -> Theme:
        """Return ``theme`` itself, the registered theme of that name, or the default."""

        if isinstance(theme, Theme):
            return theme
        key = (theme or self._default_name).strip().lower()
        resolved = self._themes.get(key)
        if resolved is None:
            LOGGER.warning("Unknown theme %r; using %r", theme, self._default_name)
            return self._themes[self._default_name]
        return resolved

    def default(self) -> Theme:
        return self._themes[self._default_name]

    def set_default(self, theme_name: str) -> None:
        key = theme_name.strip().lower()
        if key not in self._themes:
            raise KeyError(f"Unknown theme '{theme_name}'")
        self._default_name = key

    def export_theme(self, theme: Theme | str | None, destination: str | Path, *, indent: int = 2) -> Path:
        path = Path(destination)
        path.write_text(self.resolve(theme).to_json(indent=indent), encoding="utf-8")
        return path

    def import_theme(self, source: str | Path, *, activate: bool = False) -> Theme:
        payload = json.loads(Path(source).read_text(encoding="utf-8"))
        if not isinstance(payload, Mapping):
            raise ValueError("Theme file must contain a JSON object")
        theme = Theme.from_dict(payload)
        self.register(theme)
        if activate:
            self.set_default(theme.name)
        return theme

    def apply_to_application(self, theme: Theme | str | None = None, *, app: Any | None = None) -> Theme:
        """Push the theme's base colors into a ``QApplication`` palette."""

        from PySide6.QtGui import QColor, QPalette
        from PySide6.QtWidgets import QApplication

        resolved = self.resolve(theme)
        qt_app: Any = app if app is not None else QApplication.instance()
        if qt_app is None:
            return resolved

        palette = QPalette()
        roles = (
            (QPalette.ColorRole.Window, "background"),
            (QPalette.ColorRole.WindowText, "foreground"),
            (QPalette.ColorRole.Base, "background"),
            (QPalette.ColorRole.Text, "foreground"),
            (QPalette.ColorRole.ToolTipBase, "overlay_background"),
            (QPalette.ColorRole.ToolTipText, "overlay_foreground"),
            (QPalette.ColorRole.Highlight, "selection"),
            (QPalette.ColorRole.HighlightedText, "selection_foreground"),
        )
        for role, key in roles:
            if key in resolved.palette:
                palette.setColor(role, QColor(*resolved.palette[key]))
        qt_app.setPalette(palette)

        style_name = resolved.metadata.get("qt_style")
        if style_name:
            qt_app.setStyle(style_name)
        return resolved


def overlay_stylesheet(theme: Theme, *, border: str = "rounded") -> str:
    """Qt stylesheet for the floating overlay panel."""

    radius = {"rounded": 6, "none": 0}.get(border, 0)
    border_rule = "none" if border == "none" else f"1px solid {theme.hex('overlay_border', '#808080')}"
    return (
        "QPlainTextEdit {"
        f" background: {theme.hex('overlay_background', '#ffffff')};"
        f" color: {theme.hex('overlay_foreground', '#000000')};"
        f" border: {border_rule};"
        f" border-radius: {radius}px;"
        " }"
    )


_BUILTIN_THEMES = [build_default_dark_theme(), build_light_theme()]

theme_manager = ThemeManager(_BUILTIN_THEMES)


def load_theme(theme: Theme | str | None = None) -> Theme:
    return theme_manager.resolve(theme)


def available_themes() -> List[str]:
    return theme_manager.available_names()


__all__ = [
    "ThemeManager",
    "available_themes",
    "build_default_dark_theme",
    "build_light_theme",
    "load_theme",
    "overlay_stylesheet",
    "theme_manager",
]
