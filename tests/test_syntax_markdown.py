"""Tests for markdown structural highlighting of overlay content."""

from __future__ import annotations

from diagfloat.core.diagnostics import HighlightSpan
from diagfloat.editor.syntax.markdown import (
    STYLE_CODE,
    STYLE_CODE_BLOCK,
    STYLE_EMPHASIS,
    STYLE_HEADING,
    STYLE_STRONG,
    markdown_highlights,
)


def test_empty_input_has_no_spans() -> None:
    assert markdown_highlights([]) == []


def test_inline_code_and_strong_are_located_by_column() -> None:
    spans = markdown_highlights(["Type `string` is **bad**"])

    assert HighlightSpan(STYLE_CODE, 0, 5, 0, 13) in spans
    assert HighlightSpan(STYLE_STRONG, 0, 17, 0, 24) in spans


def test_emphasis_span() -> None:
    spans = markdown_highlights(["a *b* c"])

    assert spans == [HighlightSpan(STYLE_EMPHASIS, 0, 2, 0, 5)]


def test_fenced_block_covers_whole_lines_without_inline_spans() -> None:
    lines = ["Type", "```ts", "{ a: `x` }", "```", "is `Bar`."]

    spans = markdown_highlights(lines)

    block_lines = sorted(span.start_line for span in spans if span.style_class == STYLE_CODE_BLOCK)
    assert block_lines == [1, 2, 3]
    assert HighlightSpan(STYLE_CODE_BLOCK, 2, 0, 2, len(lines[2])) in spans
    assert not [span for span in spans if span.style_class == STYLE_CODE and span.start_line == 2]
    assert HighlightSpan(STYLE_CODE, 4, 3, 4, 8) in spans


def test_heading_line() -> None:
    spans = markdown_highlights(["# Title", "body"])

    assert spans == [HighlightSpan(STYLE_HEADING, 0, 0, 0, 7)]


def test_plain_diagnostic_header_has_no_spans() -> None:
    assert markdown_highlights(["E typescript(2322)", "Cannot find name."]) == []
