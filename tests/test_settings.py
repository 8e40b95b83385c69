"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path

import pytest

from diagfloat.services.settings import DEFAULT_REFORMAT_HOOK, Settings, SettingsStore


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load() == Settings()


def test_defaults_match_overlay_conventions() -> None:
    settings = Settings()

    assert settings.max_width == 80
    assert (settings.anchor_row, settings.anchor_col) == (1, 0)
    assert settings.border == "rounded"
    assert settings.render_delay_ms == 30
    assert settings.close_key == "q"
    assert settings.filetype == "markdown"
    assert settings.reformat_sources == ["typescript", "ts"]
    assert settings.reformat_hook == DEFAULT_REFORMAT_HOOK
    assert settings.diagnostic_config() is None


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)
    original = Settings(
        max_width=60,
        toggle_key="Ctrl+Shift+D",
        reformat_sources=["ts"],
        reformat_hook=None,
        signs={"text": {"ERROR": "x"}},
        theme="daylight",
    )

    assert store.save(original) == path
    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["version"] == 1
    assert not path.with_suffix(".tmp").exists()
    assert SettingsStore(path).load() == original


def test_signs_become_diagnostic_config() -> None:
    settings = Settings(signs={"text": {"WARN": "!"}})

    assert settings.diagnostic_config() == {"signs": {"text": {"WARN": "!"}}}


def test_invalid_json_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        settings = SettingsStore(path).load()

    assert settings == Settings()
    assert "not valid JSON" in caplog.text


def test_undecodable_file_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_bytes(b'{"theme": "\xff\xfe"}')

    with caplog.at_level(logging.WARNING):
        settings = SettingsStore(path).load()

    assert settings == Settings()
    assert "not valid UTF-8" in caplog.text


def test_non_object_payload_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_wrong_typed_and_unknown_fields_are_dropped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"max_width": "wide", "debug_logging": 1, "border": "single", "mystery": True, "version": 1}),
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING):
        settings = SettingsStore(path).load()

    assert settings == Settings(border="single")
    assert "Ignoring setting max_width" in caplog.text
    assert "Ignoring setting debug_logging" in caplog.text


def test_cli_overrides_apply_after_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(max_width=50, theme="daylight"))

    settings = SettingsStore(path).load(overrides={"max_width": 70, "reformat_hook": None, "unknown": 1})

    assert settings == replace(Settings(), max_width=70, theme="daylight", reformat_hook=None)


def test_none_override_ignored_for_required_fields(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"theme": None})

    assert settings.theme == "default"


def test_environment_overrides_win(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIAGFLOAT_MAX_WIDTH", "42")
    monkeypatch.setenv("DIAGFLOAT_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("DIAGFLOAT_THEME", "daylight")
    monkeypatch.setenv("DIAGFLOAT_TOGGLE_KEY", "F2")

    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"max_width": 70})

    assert settings.max_width == 42
    assert settings.debug_logging is True
    assert settings.theme == "daylight"
    assert settings.toggle_key == "F2"


def test_invalid_integer_environment_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    monkeypatch.setenv("DIAGFLOAT_RENDER_DELAY_MS", "soon")

    with caplog.at_level(logging.WARNING):
        settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.render_delay_ms == 30
    assert "not a valid integer" in caplog.text
