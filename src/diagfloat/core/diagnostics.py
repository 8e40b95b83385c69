"""Structured types describing diagnostics and their rendered form."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class Severity(IntEnum):
    """Ordinal diagnostic severity; lower values are more severe."""

    ERROR = 1
    WARN = 2
    INFO = 3
    HINT = 4
    # Single-letter aliases, used to derive the default sign icons.
    E = 1
    W = 2
    I = 3  # noqa: E741
    N = 4

    @classmethod
    def coerce(cls, value: Any) -> "Severity | None":
        """Return the matching severity for ``value`` or ``None`` when unknown."""

        if isinstance(value, Severity):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.coerce(int(text))
            key = text.upper()
            if key == "WARNING":
                key = "WARN"
            elif key in {"INFORMATION", "INFORMATIONAL"}:
                key = "INFO"
            return cls.__members__.get(key)
        return None


@dataclass(slots=True, frozen=True)
class DiagnosticRecord:
    """A single diagnostic as supplied by the host for one buffer line."""

    message: str
    source: str | None = None
    code: str | int | None = None
    severity: Severity | int | None = None
    line: int = 0
    column: int = 0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "DiagnosticRecord":
        """Build a record from a flat or LSP-style mapping.

        Raises:
            ValueError: if the payload carries no usable message or line.
        """

        message = payload.get("message")
        if not isinstance(message, str):
            raise ValueError("Diagnostic payload missing a 'message' string")

        line = payload.get("line", payload.get("lnum"))
        column = payload.get("column", payload.get("col", 0))
        range_payload = payload.get("range")
        if isinstance(range_payload, Mapping):
            start = range_payload.get("start")
            if isinstance(start, Mapping):
                line = start.get("line", line)
                column = start.get("character", column)
        try:
            line_number = int(line if line is not None else 0)
            column_number = int(column or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError("Diagnostic line/column must be integers") from exc
        if line_number < 0:
            raise ValueError("Diagnostic line must be non-negative")

        source = payload.get("source")
        code = payload.get("code")
        if code is not None and not isinstance(code, (str, int)):
            code = str(code)
        raw_severity = payload.get("severity")
        severity: Severity | int | None = Severity.coerce(raw_severity)
        if severity is None and isinstance(raw_severity, int) and not isinstance(raw_severity, bool):
            severity = raw_severity
        return cls(
            message=message,
            source=str(source) if source is not None else None,
            code=code,
            severity=severity,
            line=line_number,
            column=max(0, column_number),
        )


@dataclass(slots=True, frozen=True)
class FormattedBlock:
    """Display lines produced for one diagnostic: a header then the message."""

    lines: tuple[str, ...]
    severity: Severity | None = None
    icon: str = ""

    @property
    def header(self) -> str:
        return self.lines[0] if self.lines else ""

    @property
    def body(self) -> tuple[str, ...]:
        return self.lines[1:]


@dataclass(slots=True, frozen=True)
class HighlightSpan:
    """Half-open styled range over the overlay content in (line, column) pairs."""

    style_class: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @property
    def is_empty(self) -> bool:
        return (self.start_line, self.start_col) >= (self.end_line, self.end_col)

    def to_tuple(self) -> tuple[str, tuple[int, int], tuple[int, int]]:
        return (
            self.style_class,
            (self.start_line, self.start_col),
            (self.end_line, self.end_col),
        )


__all__ = ["DiagnosticRecord", "FormattedBlock", "HighlightSpan", "Severity"]
