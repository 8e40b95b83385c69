"""Themes: palettes, overlay text styles and the theme registry."""

from .models import STYLE_CLASSES, ColorTuple, TextStyle, Theme, color_to_hex, normalize_color
from .manager import (
    ThemeManager,
    available_themes,
    build_default_dark_theme,
    build_light_theme,
    load_theme,
    overlay_stylesheet,
    theme_manager,
)

__all__ = [
    "ColorTuple",
    "STYLE_CLASSES",
    "TextStyle",
    "Theme",
    "ThemeManager",
    "available_themes",
    "build_default_dark_theme",
    "build_light_theme",
    "color_to_hex",
    "load_theme",
    "normalize_color",
    "overlay_stylesheet",
    "theme_manager",
]
