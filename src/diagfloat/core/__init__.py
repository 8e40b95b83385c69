"""Core domain types shared by the formatter, controller and hosts."""

from .diagnostics import DiagnosticRecord, FormattedBlock, HighlightSpan, Severity

__all__ = ["DiagnosticRecord", "FormattedBlock", "HighlightSpan", "Severity"]
