"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "Settings",
    "SettingsStore",
    "DEFAULT_REFORMAT_HOOK",
    "ENV_PREFIX",
]

LOGGER = logging.getLogger(__name__)
ENV_PREFIX = "DIAGFLOAT_"
_SETTINGS_DIR = Path.home() / ".diagfloat"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
DEFAULT_REFORMAT_HOOK = "diagfloat.editor.reformatters:prettify_typescript_message"
_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGFLOAT_THEME": "theme",
    "DIAGFLOAT_REFORMAT_HOOK": "reformat_hook",
    "DIAGFLOAT_TOGGLE_KEY": "toggle_key",
    "DIAGFLOAT_DEFAULT_SOURCE": "default_source",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGFLOAT_DEBUG_LOGGING": "debug_logging",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGFLOAT_MAX_WIDTH": "max_width",
    "DIAGFLOAT_RENDER_DELAY_MS": "render_delay_ms",
    "DIAGFLOAT_TAB_WIDTH": "tab_width",
}
_NULLABLE_FIELDS = frozenset({"reformat_hook", "signs"})
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class Settings:
    """User-configurable overlay settings persisted between sessions."""

    max_width: int = 80
    anchor_row: int = 1
    anchor_col: int = 0
    border: str = "rounded"
    render_delay_ms: int = 30
    scroll_down_key: str = "Ctrl+F"
    scroll_up_key: str = "Ctrl+B"
    close_key: str = "q"
    toggle_key: str = "Ctrl+K"
    filetype: str = "markdown"
    default_source: str = "editor"
    reformat_sources: list[str] = field(default_factory=lambda: ["typescript", "ts"])
    reformat_hook: str | None = DEFAULT_REFORMAT_HOOK
    signs: dict[str, Any] | None = None
    theme: str = "default"
    tab_width: int = 8
    debug_logging: bool = False

    def diagnostic_config(self) -> dict[str, Any] | None:
        """Return the host-style diagnostic config carrying the sign overrides."""

        if self.signs is None:
            return None
        return {"signs": self.signs}


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug("Settings loaded from %s: %s", self._path, sorted(data))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid UTF-8: %s", self._path, exc)
            return {}
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s must contain a JSON object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {item.name for item in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed:
                continue
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    defaults = Settings()
    result: Dict[str, Any] = {}
    for item in fields(Settings):
        if item.name not in payload:
            continue
        value = payload[item.name]
        if not _matches_default_type(item.name, getattr(defaults, item.name), value):
            LOGGER.warning(
                "Ignoring setting %s=%r: expected %s",
                item.name,
                value,
                type(getattr(defaults, item.name)).__name__,
            )
            continue
        result[item.name] = value
    return result


def _matches_default_type(name: str, default: Any, value: Any) -> bool:
    if value is None:
        return name in _NULLABLE_FIELDS
    if name == "signs":
        return isinstance(value, dict)
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(default, list):
        return isinstance(value, list) and all(isinstance(entry, str) for entry in value)
    return isinstance(value, type(default))
