"""Diagnostic formatting: records in, overlay lines and highlight spans out.

The formatter is pure: it never touches the host beyond reading the optional
sign configuration through ``config_provider``. Each diagnostic becomes a
header line (icon, source and optional code) followed by its message lines;
header lines carry two highlight spans, one over the icon column and one
emphasising the rest of the header.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

from ..core.diagnostics import DiagnosticRecord, FormattedBlock, HighlightSpan, Severity

LOGGER = logging.getLogger(__name__)

ReformatHook = Callable[[str], Any]
ConfigProvider = Callable[[], Any]

STYLE_BOLD = "Bold"
DEFAULT_SOURCE = "editor"
DEFAULT_REFORMAT_SOURCES: tuple[str, ...] = ("typescript", "ts")

_SEVERITY_STYLES: Mapping[Severity, str] = MappingProxyType(
    {
        Severity.ERROR: "DiagnosticSignError",
        Severity.WARN: "DiagnosticSignWarn",
        Severity.INFO: "DiagnosticSignInfo",
        Severity.HINT: "DiagnosticSignHint",
    }
)

_DEFAULT_ICON_MAP: Mapping[Severity, str] | None = None


# ---------------------------------------------------------------------------
# Sign configuration
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class ConfiguredSigns:
    """Icon map supplied by the host configuration."""

    icons: Mapping[Severity, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class DefaultSigns:
    """Marker for "no usable host configuration; use the built-in icons"."""


SignsConfig = ConfiguredSigns | DefaultSigns


def default_icon_map() -> Mapping[Severity, str]:
    """Return the built-in icon map, computed once per process.

    Every single-letter severity alias maps its severity to ``"<letter> "``.
    """

    global _DEFAULT_ICON_MAP
    if _DEFAULT_ICON_MAP is None:
        icons: dict[Severity, str] = {}
        for name, member in Severity.__members__.items():
            if len(name) == 1:
                icons[member] = f"{name} "
        _DEFAULT_ICON_MAP = MappingProxyType(icons)
    return _DEFAULT_ICON_MAP


def parse_signs_config(config: Any) -> SignsConfig:
    """Classify a host diagnostic config as configured signs or the default.

    Only ``{"signs": {"text": {<severity>: <icon>}}}`` is accepted; any other
    shape yields :class:`DefaultSigns`. Entries with unknown severities or
    non-string icons are dropped.
    """

    if not isinstance(config, Mapping):
        return DefaultSigns()
    signs = config.get("signs")
    if not isinstance(signs, Mapping):
        return DefaultSigns()
    text = signs.get("text")
    if not isinstance(text, Mapping):
        return DefaultSigns()

    icons: dict[Severity, str] = {}
    for key, icon in text.items():
        severity = Severity.coerce(key)
        if severity is None or not isinstance(icon, str):
            continue
        icons[severity] = icon
    return ConfiguredSigns(icons=MappingProxyType(icons))


def resolve_icon_map(config: Any) -> Mapping[Severity, str]:
    signs = parse_signs_config(config)
    if isinstance(signs, ConfiguredSigns):
        return signs.icons
    return default_icon_map()


def severity_style(severity: Any) -> str | None:
    """Return the style class for ``severity`` or ``None`` when unrecognised."""

    resolved = Severity.coerce(severity)
    if resolved is None:
        return None
    return _SEVERITY_STYLES.get(resolved)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------
class DiagnosticFormatter:
    """Formats diagnostics for the line-diagnostics overlay."""

    def __init__(
        self,
        *,
        config_provider: ConfigProvider | None = None,
        reformat_hook: ReformatHook | None = None,
        reformat_sources: Iterable[str] = DEFAULT_REFORMAT_SOURCES,
        default_source: str = DEFAULT_SOURCE,
    ) -> None:
        self._config_provider = config_provider
        self._reformat_hook = reformat_hook
        self._reformat_sources = frozenset(reformat_sources)
        self._default_source = default_source

    @property
    def reformat_sources(self) -> frozenset[str]:
        return self._reformat_sources

    def icon_map(self) -> Mapping[Severity, str]:
        """Return the icon map for this retrieval; host config is never cached."""

        config = None
        if self._config_provider is not None:
            try:
                config = self._config_provider()
            except Exception:
                LOGGER.debug("Diagnostic config lookup failed; using default icons", exc_info=True)
        return resolve_icon_map(config)

    def format_one(
        self,
        record: DiagnosticRecord,
        *,
        icons: Mapping[Severity, str] | None = None,
    ) -> FormattedBlock:
        active_icons = icons if icons is not None else self.icon_map()
        severity = Severity.coerce(record.severity)
        icon = active_icons.get(severity, "") if severity is not None else ""
        source = record.source or self._default_source

        header = f"{icon}{source}"
        if record.code is not None:
            header += f"({record.code})"

        message = self._reformat(source, record.message)
        return FormattedBlock(
            lines=(header, *message.split("\n")),
            severity=severity,
            icon=icon,
        )

    def format_line(
        self, records: Sequence[DiagnosticRecord]
    ) -> tuple[list[str], list[HighlightSpan]]:
        """Format every record of one line, in the order the host supplied them."""

        lines: list[str] = []
        highlights: list[HighlightSpan] = []
        if not records:
            return lines, highlights

        icons = self.icon_map()
        for record in records:
            block = self.format_one(record, icons=icons)
            header_index = len(lines)
            style = severity_style(block.severity)
            if style is not None:
                header = block.header
                highlights.append(HighlightSpan(style, header_index, 0, header_index, 1))
                highlights.append(
                    HighlightSpan(STYLE_BOLD, header_index, 1, header_index, len(header))
                )
            lines.extend(block.lines)
        return lines, highlights

    def _reformat(self, source: str, message: str) -> str:
        if self._reformat_hook is None or source not in self._reformat_sources:
            return message
        try:
            formatted = self._reformat_hook(message)
        except Exception:
            LOGGER.debug("Reformat hook failed for source %r; using raw message", source, exc_info=True)
            return message
        if isinstance(formatted, str) and formatted:
            return formatted
        return message


__all__ = [
    "ConfiguredSigns",
    "DEFAULT_REFORMAT_SOURCES",
    "DefaultSigns",
    "DiagnosticFormatter",
    "ReformatHook",
    "STYLE_BOLD",
    "SignsConfig",
    "default_icon_map",
    "parse_signs_config",
    "resolve_icon_map",
    "severity_style",
]
