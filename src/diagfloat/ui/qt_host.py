"""PySide6 editor host.

Windows are ``QPlainTextEdit`` widgets and buffers are ``QTextDocument``
instances; the overlay panel is a frameless child editor placed under the
origin editor's text cursor.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from functools import partial
from typing import Any, Callable, Dict, Hashable

from PySide6.QtCore import QEvent, QObject, QPoint, Qt, QTimer
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetrics,
    QKeySequence,
    QSyntaxHighlighter,
    QTextCharFormat,
    QTextCursor,
    QTextDocument,
    QTextOption,
)
from PySide6.QtWidgets import QApplication, QFrame, QPlainTextDocumentLayout, QPlainTextEdit, QWidget

from ..core.diagnostics import DiagnosticRecord, HighlightSpan
from ..editor.syntax.markdown import markdown_highlights
from ..services.diagnostic_store import DiagnosticStore
from ..theme import TextStyle, Theme, load_theme, overlay_stylesheet
from .events import CursorMoved, EventBus, WindowEntered
from .host import BufferOptions, KeyCallback, PanelGeometry, WindowOptions

LOGGER = logging.getLogger(__name__)

_PANEL_PADDING = 8


def normalize_key(key: str) -> str:
    """Return the portable text form of ``key`` (``"ctrl+f"`` -> ``"Ctrl+F"``)."""

    return QKeySequence(key).toString(QKeySequence.SequenceFormat.PortableText)


def char_format(style: TextStyle) -> QTextCharFormat:
    fmt = QTextCharFormat()
    if style.foreground is not None:
        fmt.setForeground(QColor(*style.foreground))
    if style.background is not None:
        fmt.setBackground(QColor(*style.background))
    if style.bold:
        fmt.setFontWeight(QFont.Weight.Bold)
    if style.italic:
        fmt.setFontItalic(True)
    return fmt


class MarkdownHighlighter(QSyntaxHighlighter):
    """Applies :func:`markdown_highlights` spans block by block."""

    def __init__(self, document: QTextDocument, theme: Theme) -> None:
        super().__init__(document)
        self._theme = theme
        self._revision = -1
        self._spans: Dict[int, list[HighlightSpan]] = {}

    def highlightBlock(self, text: str) -> None:  # noqa: N802 - Qt override
        self._refresh()
        block_number = self.currentBlock().blockNumber()
        for span in self._spans.get(block_number, ()):
            style = self._theme.text_style(span.style_class)
            if style is None:
                continue
            start = utf16_offset(text, span.start_col)
            end = utf16_offset(text, span.end_col if span.end_line == block_number else len(text))
            self.setFormat(start, max(0, end - start), char_format(style))

    def _refresh(self) -> None:
        document = self.document()
        if document is None or document.revision() == self._revision:
            return
        self._revision = document.revision()
        lines = document.toPlainText().split("\n")
        self._spans = {}
        for span in markdown_highlights(lines):
            self._spans.setdefault(span.start_line, []).append(span)


class QtEditorHost(QObject):
    """:class:`~diagfloat.ui.host.EditorHost` backed by Qt widgets."""

    def __init__(
        self,
        *,
        store: DiagnosticStore | None = None,
        theme: Theme | str | None = None,
        config_provider: Callable[[], Any] | None = None,
        events: EventBus[Any] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.events: EventBus[Any] = events or EventBus()
        self.store = store or DiagnosticStore()
        self.theme = load_theme(theme)
        self._config_provider = config_provider
        self._ids = itertools.count(1)
        self._windows: Dict[int, QPlainTextEdit] = {}
        self._window_buffers: Dict[int, int] = {}
        self._panel_origins: Dict[int, int | None] = {}
        self._buffers: Dict[int, QTextDocument] = {}
        self._buffer_options: Dict[int, BufferOptions] = {}
        self._highlighters: Dict[int, MarkdownHighlighter] = {}
        self._keymaps: Dict[int, Dict[str, KeyCallback]] = {}
        self._editing: set[int] = set()
        self._current: int | None = None
        app = QApplication.instance()
        if app is not None:
            app.focusChanged.connect(self._on_focus_changed)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def add_editor(self, editor: QPlainTextEdit) -> tuple[int, int]:
        """Register an existing editor widget and its document.

        Returns:
            ``(window, buffer)`` handles.
        """

        document = editor.document()
        buffer = self._buffer_handle(document)
        if buffer is None:
            buffer = next(self._ids)
            self._buffers[buffer] = document
            self._buffer_options[buffer] = BufferOptions()
        window = self._register_window(editor, buffer)
        if self._current is None:
            self._current = window
        return window, buffer

    def editor(self, window: Hashable) -> QPlainTextEdit:
        return self._require_window(window)

    def document(self, buffer: Hashable) -> QTextDocument:
        return self._require_buffer(buffer)

    def panels(self) -> list[int]:
        return list(self._panel_origins)

    # ------------------------------------------------------------------
    # EditorHost queries
    # ------------------------------------------------------------------
    def current_window(self) -> int | None:
        return self._current

    def current_buffer(self) -> int | None:
        if self._current is None:
            return None
        return self._window_buffers.get(self._current)

    def cursor_line(self, window: Hashable) -> int:
        return self._require_window(window).textCursor().blockNumber()

    def diagnostics(self, buffer: Hashable, line: int) -> list[DiagnosticRecord]:
        return self.store.get(buffer, line)

    def diagnostic_config(self) -> Any:
        return self._config_provider() if self._config_provider is not None else None

    def is_window_valid(self, window: Hashable | None) -> bool:
        return window is not None and window in self._windows

    def is_buffer_valid(self, buffer: Hashable | None) -> bool:
        return buffer is not None and buffer in self._buffers

    def buffer_lines(self, buffer: Hashable) -> list[str]:
        return self._require_buffer(buffer).toPlainText().split("\n")

    # ------------------------------------------------------------------
    # EditorHost content commands
    # ------------------------------------------------------------------
    def create_buffer(self) -> int:
        document = QTextDocument(self)
        document.setDocumentLayout(QPlainTextDocumentLayout(document))
        handle = next(self._ids)
        self._buffers[handle] = document
        self._buffer_options[handle] = BufferOptions()
        return handle

    def set_lines(self, buffer: Hashable, lines: Sequence[str]) -> None:
        document = self._require_buffer(buffer)
        if not self._buffer_options[buffer].modifiable:  # type: ignore[index]
            raise RuntimeError(f"Buffer {buffer} is not modifiable")
        document.setPlainText("\n".join(lines))

    def add_highlight(self, buffer: Hashable, span: HighlightSpan) -> None:
        style = self.theme.text_style(span.style_class)
        if style is None or span.is_empty:
            return
        document = self._require_buffer(buffer)
        start = _position(document, span.start_line, span.start_col)
        end = _position(document, span.end_line, span.end_col)
        if start is None or end is None or end <= start:
            return
        cursor = QTextCursor(document)
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
        cursor.mergeCharFormat(char_format(style))

    def set_buffer_options(self, buffer: Hashable, options: BufferOptions) -> None:
        self._require_buffer(buffer)
        self._buffer_options[buffer] = options  # type: ignore[index]
        for window, shown in self._window_buffers.items():
            if shown == buffer:
                self._windows[window].setReadOnly(options.readonly)

    def start_structural_highlighting(self, buffer: Hashable, language: str) -> None:
        if language != "markdown":
            LOGGER.debug("No structural highlighter for %s", language)
            return
        if buffer not in self._highlighters:
            self._highlighters[buffer] = MarkdownHighlighter(self._require_buffer(buffer), self.theme)  # type: ignore[index]

    # ------------------------------------------------------------------
    # EditorHost panel commands
    # ------------------------------------------------------------------
    def open_panel(self, buffer: Hashable, geometry: PanelGeometry) -> int:
        document = self._require_buffer(buffer)
        origin_handle = self._current
        origin = self._windows.get(origin_handle) if origin_handle is not None else None

        panel = QPlainTextEdit(origin)
        panel.setDocument(document)
        panel.setFrameShape(QFrame.Shape.NoFrame if geometry.border == "none" else QFrame.Shape.StyledPanel)
        panel.setStyleSheet(overlay_stylesheet(self.theme, border=geometry.border))
        if not geometry.focusable:
            panel.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        panel.setReadOnly(self._buffer_options[buffer].readonly)  # type: ignore[index]

        metrics = QFontMetrics(panel.font())
        width = geometry.width * metrics.horizontalAdvance("M") + 2 * _PANEL_PADDING
        height = geometry.height * metrics.lineSpacing() + 2 * _PANEL_PADDING
        if origin is not None:
            anchor = origin.cursorRect().bottomLeft() + QPoint(
                geometry.col * metrics.horizontalAdvance("M"),
                (geometry.row - 1) * metrics.lineSpacing(),
            )
            top_left = origin.viewport().mapTo(origin, anchor)
            width = min(width, max(1, origin.width() - top_left.x()))
            panel.move(top_left)
        panel.resize(width, height)

        handle = self._register_window(panel, buffer)  # type: ignore[arg-type]
        self._panel_origins[handle] = origin_handle
        panel.show()
        panel.raise_()
        if geometry.enter:
            self.focus_window(handle)
        return handle

    def set_window_options(self, window: Hashable, options: WindowOptions) -> None:
        widget = self._require_window(window)
        widget.setLineWrapMode(
            QPlainTextEdit.LineWrapMode.WidgetWidth if options.wrap else QPlainTextEdit.LineWrapMode.NoWrap
        )
        widget.setWordWrapMode(
            QTextOption.WrapMode.WrapAtWordBoundaryOrAnywhere if options.linebreak else QTextOption.WrapMode.WrapAnywhere
        )

    def close_panel(self, window: Hashable) -> None:
        widget = self._windows.pop(window, None)  # type: ignore[arg-type]
        if widget is None:
            return
        buffer = self._window_buffers.pop(window, None)  # type: ignore[arg-type]
        origin = self._panel_origins.pop(window, None)  # type: ignore[arg-type]
        self._editing.discard(window)  # type: ignore[arg-type]
        widget.removeEventFilter(self)
        widget.hide()
        widget.deleteLater()

        if buffer is not None and buffer not in self._window_buffers.values():
            options = self._buffer_options.get(buffer)
            if options is not None and options.wipe_on_hide:
                self._wipe_buffer(buffer)

        if self._current == window:
            self._current = None
            if origin is not None and origin in self._windows:
                self.focus_window(origin)

    def focus_window(self, window: Hashable) -> None:
        widget = self._windows.get(window)  # type: ignore[arg-type]
        if widget is None:
            return
        widget.setFocus()
        self._enter(window)  # type: ignore[arg-type]

    def scroll_window(self, window: Hashable, pages: int) -> None:
        bar = self._require_window(window).verticalScrollBar()
        bar.setValue(bar.value() + pages * bar.pageStep())

    def redraw(self) -> None:
        for widget in self._windows.values():
            widget.viewport().update()

    def defer(self, delay_ms: int, callback: Callable[[], None]) -> None:
        QTimer.singleShot(max(0, delay_ms), callback)

    def map_key(self, buffer: Hashable, key: str, callback: KeyCallback, *, description: str = "") -> None:
        self._require_buffer(buffer)
        self._keymaps.setdefault(buffer, {})[normalize_key(key)] = callback  # type: ignore[arg-type]
        LOGGER.debug("Mapped %s on buffer %s (%s)", key, buffer, description or "no description")

    def unmap_key(self, buffer: Hashable, key: str) -> None:
        keymap = self._keymaps.get(buffer)  # type: ignore[arg-type]
        if keymap is not None:
            keymap.pop(normalize_key(key), None)

    def dispatch_key(self, window: Hashable, key: str) -> bool:
        """Run the mapping for ``key`` in the buffer shown by ``window``."""

        buffer = self._window_buffers.get(window)  # type: ignore[arg-type]
        callback = self._keymaps.get(buffer, {}).get(normalize_key(key)) if buffer is not None else None
        if callback is None:
            return False
        callback()
        return True

    # ------------------------------------------------------------------
    # Qt plumbing
    # ------------------------------------------------------------------
    def eventFilter(self, obj: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt override
        if event.type() == QEvent.Type.KeyPress:
            window = self._window_handle(obj)
            if window is not None:
                key = QKeySequence(event.keyCombination()).toString(QKeySequence.SequenceFormat.PortableText)
                if self.dispatch_key(window, key):
                    event.accept()
                    return True
        return super().eventFilter(obj, event)

    def _register_window(self, widget: QPlainTextEdit, buffer: int) -> int:
        handle = next(self._ids)
        self._windows[handle] = widget
        self._window_buffers[handle] = buffer
        widget.installEventFilter(self)
        widget.cursorPositionChanged.connect(partial(self._on_cursor_position_changed, handle))
        widget.textChanged.connect(partial(self._editing.add, handle))
        return handle

    def _on_cursor_position_changed(self, window: int) -> None:
        if window not in self._windows:
            return
        insert_mode = window in self._editing
        self._editing.discard(window)
        self.events.publish(CursorMoved(window=window, insert_mode=insert_mode))

    def _on_focus_changed(self, _old: QWidget | None, new: QWidget | None) -> None:
        window = self._window_handle(new)
        if window is not None:
            self._enter(window)

    def _enter(self, window: int) -> None:
        if window == self._current:
            return
        self._current = window
        self.events.publish(WindowEntered(window=window))

    def _wipe_buffer(self, buffer: int) -> None:
        highlighter = self._highlighters.pop(buffer, None)
        if highlighter is not None:
            highlighter.setDocument(None)
        self._keymaps.pop(buffer, None)
        self._buffer_options.pop(buffer, None)
        document = self._buffers.pop(buffer)
        document.deleteLater()

    def _window_handle(self, widget: Any) -> int | None:
        while widget is not None:
            for handle, candidate in self._windows.items():
                if candidate is widget:
                    return handle
            widget = widget.parent() if isinstance(widget, QObject) else None
        return None

    def _buffer_handle(self, document: QTextDocument) -> int | None:
        for handle, candidate in self._buffers.items():
            if candidate is document:
                return handle
        return None

    def _require_window(self, window: Hashable | None) -> QPlainTextEdit:
        widget = self._windows.get(window) if window is not None else None  # type: ignore[arg-type]
        if widget is None:
            raise KeyError(f"Unknown window {window}")
        return widget

    def _require_buffer(self, buffer: Hashable | None) -> QTextDocument:
        document = self._buffers.get(buffer) if buffer is not None else None  # type: ignore[arg-type]
        if document is None:
            raise KeyError(f"Unknown buffer {buffer}")
        return document


def utf16_offset(text: str, column: int) -> int:
    """Convert a code-point column of ``text`` into Qt's UTF-16 position."""

    column = max(0, min(column, len(text)))
    return len(text[:column].encode("utf-16-le")) // 2


def _position(document: QTextDocument, line: int, column: int) -> int | None:
    block = document.findBlockByNumber(line)
    if not block.isValid():
        return None
    return block.position() + utf16_offset(block.text(), column)


__all__ = ["MarkdownHighlighter", "QtEditorHost", "char_format", "normalize_key", "utf16_offset"]
