"""Markdown structural highlighting for overlay content."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from markdown_it import MarkdownIt
from markdown_it.token import Token

from ...core.diagnostics import HighlightSpan

STYLE_HEADING = "MarkdownHeading"
STYLE_CODE_BLOCK = "MarkdownCodeBlock"
STYLE_CODE = "MarkdownCode"
STYLE_STRONG = "MarkdownStrong"
STYLE_EMPHASIS = "MarkdownEmphasis"

_BLOCK_STYLES = {
    "fence": STYLE_CODE_BLOCK,
    "code_block": STYLE_CODE_BLOCK,
    "heading_open": STYLE_HEADING,
}
_PAIRED_STYLES = {
    "strong_open": STYLE_STRONG,
    "em_open": STYLE_EMPHASIS,
}
_CLOSERS = {"strong_close", "em_close"}

_MARKDOWN_PARSER: Optional[MarkdownIt] = None


def _build_parser() -> MarkdownIt:
    global _MARKDOWN_PARSER
    if _MARKDOWN_PARSER is None:
        parser = MarkdownIt("commonmark", {"html": False})
        parser.enable("strikethrough")
        _MARKDOWN_PARSER = parser
    return _MARKDOWN_PARSER


def markdown_highlights(lines: Sequence[str]) -> list[HighlightSpan]:
    """Return style spans for headings, code blocks and inline emphasis in ``lines``.

    Block constructs are located through markdown-it token line maps and
    cover whole lines. Inline constructs are located by walking each
    remaining line's inline children against the raw text.
    """

    if not lines:
        return []
    parser = _build_parser()
    tokens = parser.parse("\n".join(lines))

    spans: list[HighlightSpan] = []
    covered: set[int] = set()
    for token in tokens:
        style = _BLOCK_STYLES.get(token.type)
        if style is None or token.map is None:
            continue
        start, end = token.map
        for index in range(start, min(end, len(lines))):
            spans.append(HighlightSpan(style, index, 0, index, len(lines[index])))
            if style == STYLE_CODE_BLOCK:
                covered.add(index)

    for index, line in enumerate(lines):
        if index in covered or not line.strip():
            continue
        spans.extend(_inline_spans(parser, index, line))
    return spans


def _inline_spans(parser: MarkdownIt, index: int, line: str) -> list[HighlightSpan]:
    spans: list[HighlightSpan] = []
    children: list[Token] = []
    for token in parser.parseInline(line):
        children.extend(token.children or [])

    cursor = 0
    pending: list[tuple[str, int]] = []
    for child in children:
        if child.type == "text":
            if child.content:
                found = line.find(child.content, cursor)
                if found >= 0:
                    cursor = found + len(child.content)
        elif child.type == "code_inline":
            start = line.find(child.markup, cursor)
            if start < 0:
                continue
            body_start = start + len(child.markup)
            content_at = line.find(child.content, body_start) if child.content else body_start
            search_from = content_at + len(child.content) if content_at >= 0 else body_start
            close = line.find(child.markup, search_from)
            if close < 0:
                continue
            end = close + len(child.markup)
            spans.append(HighlightSpan(STYLE_CODE, index, start, index, end))
            cursor = end
        elif child.type in _PAIRED_STYLES:
            start = line.find(child.markup, cursor)
            if start < 0:
                continue
            pending.append((_PAIRED_STYLES[child.type], start))
            cursor = start + len(child.markup)
        elif child.type in _CLOSERS and pending:
            close = line.find(child.markup, cursor)
            if close < 0:
                continue
            style, start = pending.pop()
            end = close + len(child.markup)
            spans.append(HighlightSpan(style, index, start, index, end))
            cursor = end
    return spans


__all__ = [
    "STYLE_CODE",
    "STYLE_CODE_BLOCK",
    "STYLE_EMPHASIS",
    "STYLE_HEADING",
    "STYLE_STRONG",
    "markdown_highlights",
]
