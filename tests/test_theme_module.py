"""Tests for the theme models and registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from diagfloat.theme import (
    STYLE_CLASSES,
    TextStyle,
    Theme,
    ThemeManager,
    available_themes,
    build_default_dark_theme,
    build_light_theme,
    load_theme,
    normalize_color,
    overlay_stylesheet,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("#ff8000", (255, 128, 0)),
        ("0f0", (0, 255, 0)),
        ("10, 20, 300", (10, 20, 255)),
        ([1, -5, 2], (1, 0, 2)),
    ],
)
def test_normalize_color(value, expected) -> None:
    assert normalize_color(value) == expected


@pytest.mark.parametrize("value", ["", "#12", "1,2"])
def test_normalize_color_rejects_bad_strings(value) -> None:
    with pytest.raises(ValueError):
        normalize_color(value)


def test_normalize_color_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        normalize_color(3.5)


def test_theme_normalizes_name_and_palette() -> None:
    theme = Theme(name="  Night ", title="", palette={"Overlay_Border": "#010203"})

    assert theme.name == "night"
    assert theme.title == "Night"
    assert theme.color("overlay_border") == (1, 2, 3)
    assert theme.hex("overlay_border") == "#010203"
    assert theme.hex("missing", "#000000") == "#000000"
    with pytest.raises(KeyError):
        theme.color("missing")


def test_json_roundtrip() -> None:
    theme = build_light_theme()

    assert Theme.from_json(theme.to_json()) == theme


def test_from_dict_requires_name() -> None:
    with pytest.raises(ValueError):
        Theme.from_dict({"title": "x"})


class TestTextStyles:
    def test_every_style_class_resolves_in_builtin_themes(self) -> None:
        for theme in (build_default_dark_theme(), build_light_theme()):
            for style_class in STYLE_CLASSES:
                assert isinstance(theme.text_style(style_class), TextStyle)

    def test_severity_sign_uses_palette_color(self) -> None:
        theme = build_default_dark_theme()

        style = theme.text_style("DiagnosticSignError")

        assert style == TextStyle(foreground=theme.color("diagnostic_error"), bold=True)

    def test_emphasis_is_italic_without_colors(self) -> None:
        assert build_light_theme().text_style("MarkdownEmphasis") == TextStyle(italic=True)

    def test_unknown_class_has_no_style(self) -> None:
        assert build_light_theme().text_style("Comment") is None

    def test_missing_palette_entries_leave_colors_unset(self) -> None:
        style = Theme(name="bare", title="Bare").text_style("MarkdownCode")

        assert style == TextStyle()


class TestThemeManager:
    def test_builtin_registry(self) -> None:
        assert available_themes() == ["daylight", "default"]
        assert load_theme().name == "default"
        assert load_theme("DAYLIGHT").name == "daylight"

    def test_unknown_name_falls_back_to_default(self) -> None:
        assert load_theme("neon").name == "default"

    def test_empty_manager_registers_dark_theme(self) -> None:
        manager = ThemeManager()
        assert manager.available_names() == ["default"]

    def test_register_without_overwrite(self) -> None:
        manager = ThemeManager([build_light_theme()], default_name="daylight")
        with pytest.raises(ValueError):
            manager.register(build_light_theme(), overwrite=False)

    def test_set_default_unknown_raises(self) -> None:
        with pytest.raises(KeyError):
            ThemeManager().set_default("nope")

    def test_export_and_import(self, tmp_path: Path) -> None:
        manager = ThemeManager([build_default_dark_theme()])
        custom = Theme(name="custom", title="Custom", palette={"overlay_background": "#101010"})
        path = manager.export_theme(custom, tmp_path / "custom.json")

        imported = ThemeManager().import_theme(path, activate=True)

        assert imported == custom

    def test_import_rejects_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "theme.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            ThemeManager().import_theme(path)


def test_overlay_stylesheet_reflects_border() -> None:
    theme = build_default_dark_theme()

    rounded = overlay_stylesheet(theme)
    bare = overlay_stylesheet(theme, border="none")

    assert "border-radius: 6px" in rounded
    assert theme.hex("overlay_border") in rounded
    assert "border: none" in bare
