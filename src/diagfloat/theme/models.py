"""Theme data structures and overlay text styles."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Sequence, Tuple

ColorTuple = Tuple[int, int, int]
PaletteLike = Mapping[str, Any] | Sequence[tuple[str, Any]]


def _clamp_channel(value: Any) -> int:
    return max(0, min(255, int(value)))


def normalize_color(value: Any) -> ColorTuple:
    """Convert ``value`` into an RGB tuple.

    Accepts ``#rrggbb``/``#rgb`` hex strings, ``"r, g, b"`` strings and
    three-item sequences. Channels are clamped to ``0..255``.
    """

    if isinstance(value, str):
        text = value.strip().removeprefix("#")
        if not text:
            raise ValueError("Color strings cannot be empty")
        if "," in text:
            parts = [part.strip() for part in text.split(",") if part.strip()]
            if len(parts) != 3:
                raise ValueError(f"Color '{value}' must have exactly 3 components")
            return tuple(_clamp_channel(int(part, 0)) for part in parts)  # type: ignore[return-value]
        if len(text) == 3:
            text = "".join(ch * 2 for ch in text)
        if len(text) == 6:
            return tuple(int(text[i : i + 2], 16) for i in range(0, 6, 2))  # type: ignore[return-value]
        raise ValueError(f"Unsupported color format: {value!r}")

    if isinstance(value, Sequence):
        items = list(value)
        if len(items) != 3:
            raise ValueError(f"RGB sequences must contain 3 values, received {value!r}")
        return tuple(_clamp_channel(component) for component in items)  # type: ignore[return-value]

    raise TypeError(f"Cannot convert {type(value)!r} to an RGB color")


def color_to_hex(value: ColorTuple) -> str:
    return "#" + "".join(f"{component:02x}" for component in value)


def _normalize_palette(palette: PaletteLike | None) -> Dict[str, ColorTuple]:
    if palette is None:
        return {}
    items = palette.items() if isinstance(palette, Mapping) else palette
    return {key.strip().lower(): normalize_color(value) for key, value in items if key is not None}


@dataclass(frozen=True, slots=True)
class TextStyle:
    """Character formatting applied to one overlay highlight span."""

    foreground: ColorTuple | None = None
    background: ColorTuple | None = None
    bold: bool = False
    italic: bool = False


# style class -> (foreground key, background key, bold, italic)
_STYLE_CLASSES: Dict[str, tuple[str | None, str | None, bool, bool]] = {
    "DiagnosticSignError": ("diagnostic_error", None, True, False),
    "DiagnosticSignWarn": ("diagnostic_warn", None, True, False),
    "DiagnosticSignInfo": ("diagnostic_info", None, True, False),
    "DiagnosticSignHint": ("diagnostic_hint", None, True, False),
    "Bold": (None, None, True, False),
    "MarkdownHeading": ("markdown_heading", None, True, False),
    "MarkdownCode": ("markdown_code", "markdown_code_background", False, False),
    "MarkdownCodeBlock": ("markdown_code", "markdown_code_background", False, False),
    "MarkdownEmphasis": (None, None, False, True),
    "MarkdownStrong": (None, None, True, False),
}


@dataclass(slots=True)
class Theme:
    """Named palette used to paint the overlay and the host editor."""

    name: str
    title: str
    palette: Dict[str, ColorTuple] = field(default_factory=dict)
    description: str | None = None
    version: str = "1.0.0"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.name = (self.name or "default").strip().lower() or "default"
        self.title = (self.title or self.name.title()).strip()
        self.palette = _normalize_palette(self.palette)
        self.metadata = dict(self.metadata or {})

    def color(self, key: str, fallback: ColorTuple | None = None) -> ColorTuple:
        lookup = key.strip().lower()
        if lookup in self.palette:
            return self.palette[lookup]
        if fallback is not None:
            return fallback
        raise KeyError(f"Theme '{self.name}' has no color '{key}'")

    def hex(self, key: str, fallback: str | None = None) -> str:
        try:
            return color_to_hex(self.color(key))
        except KeyError:
            if fallback is None:
                raise
            return fallback

    def text_style(self, style_class: str) -> TextStyle | None:
        """Resolve an overlay highlight class into a :class:`TextStyle`.

        Returns None for classes the theme does not style.
        """

        spec = _STYLE_CLASSES.get(style_class)
        if spec is None:
            return None
        foreground_key, background_key, bold, italic = spec
        return TextStyle(
            foreground=self.palette.get(foreground_key) if foreground_key else None,
            background=self.palette.get(background_key) if background_key else None,
            bold=bold,
            italic=italic,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "version": self.version,
            "metadata": dict(self.metadata),
            "palette": {key: color_to_hex(value) for key, value in self.palette.items()},
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Theme":
        if "name" not in payload:
            raise ValueError("Theme payload missing 'name'")
        description = payload.get("description")
        return cls(
            name=str(payload["name"]),
            title=str(payload.get("title") or payload["name"]),
            palette=payload.get("palette") or {},
            description=str(description) if description is not None else None,
            version=str(payload.get("version") or "1.0.0"),
            metadata=dict(payload.get("metadata") or {}),
        )

    @classmethod
    def from_json(cls, text: str) -> "Theme":
        data = json.loads(text)
        if not isinstance(data, Mapping):
            raise ValueError("Theme JSON root must be an object")
        return cls.from_dict(data)


STYLE_CLASSES: tuple[str, ...] = tuple(_STYLE_CLASSES)

__all__ = ["ColorTuple", "STYLE_CLASSES", "TextStyle", "Theme", "color_to_hex", "normalize_color"]
