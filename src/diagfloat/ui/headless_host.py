"""In-memory editor host.

Keeps the overlay logic usable without a GUI toolkit: buffers are lists of
strings, windows are integer handles, deferred callbacks queue until
:meth:`HeadlessHost.run_deferred` is called, and key presses are simulated
with :meth:`HeadlessHost.press`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable

from ..core.diagnostics import DiagnosticRecord, HighlightSpan
from ..editor.syntax.markdown import markdown_highlights
from ..services.diagnostic_store import DiagnosticStore
from .events import CursorMoved, EventBus, WindowEntered
from .host import BufferOptions, KeyCallback, PanelGeometry, WindowOptions

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class HeadlessBuffer:
    """Text container backing one or more headless windows."""

    handle: int
    lines: list[str] = field(default_factory=lambda: [""])
    highlights: list[HighlightSpan] = field(default_factory=list)
    options: BufferOptions = field(default_factory=BufferOptions)
    structural_language: str | None = None
    structural_highlights: list[HighlightSpan] = field(default_factory=list)
    keymaps: dict[str, KeyCallback] = field(default_factory=dict)


@dataclass(slots=True)
class HeadlessWindow:
    """Editor window or floating panel showing a buffer."""

    handle: int
    buffer: int
    cursor: tuple[int, int] = (0, 0)
    geometry: PanelGeometry | None = None
    anchor: tuple[int, int] | None = None
    options: WindowOptions = field(default_factory=WindowOptions)
    scroll_offset: int = 0

    @property
    def is_panel(self) -> bool:
        return self.geometry is not None


class HeadlessHost:
    """:class:`~diagfloat.ui.host.EditorHost` implementation without a GUI."""

    def __init__(
        self,
        *,
        store: DiagnosticStore | None = None,
        config_provider: Callable[[], Any] | None = None,
        events: EventBus[Any] | None = None,
    ) -> None:
        self.events: EventBus[Any] = events or EventBus()
        self.store = store or DiagnosticStore()
        self._config_provider = config_provider
        self._buffers: dict[int, HeadlessBuffer] = {}
        self._windows: dict[int, HeadlessWindow] = {}
        self._next_buffer = 1
        self._next_window = 1000
        self._current: int | None = None
        self._previous: int | None = None
        self._deferred: list[tuple[int, Callable[[], None]]] = []
        self.redraw_count = 0

    # ------------------------------------------------------------------
    # Simulation helpers
    # ------------------------------------------------------------------
    def open_editor(self, lines: Sequence[str] = ("",), *, focus: bool = True) -> tuple[int, int]:
        """Create a regular editor window over a new buffer.

        Returns:
            ``(window, buffer)`` handles.
        """

        buffer = self.create_buffer()
        self._buffers[buffer].lines = list(lines) or [""]
        window = self._new_window(buffer)
        if focus or self._current is None:
            self.enter_window(window)
        return window, buffer

    def enter_window(self, window: int) -> None:
        """Move focus into ``window`` and publish :class:`WindowEntered`."""

        if window not in self._windows:
            raise KeyError(f"Unknown window {window}")
        if window == self._current:
            return
        self._previous = self._current
        self._current = window
        self.events.publish(WindowEntered(window=window))

    def move_cursor(
        self,
        line: int,
        column: int = 0,
        *,
        window: int | None = None,
        insert_mode: bool = False,
    ) -> None:
        """Place the cursor and publish :class:`CursorMoved` for its window."""

        target = self._require_window(window if window is not None else self._current)
        buffer = self._buffers[target.buffer]
        line = max(0, min(line, len(buffer.lines) - 1))
        target.cursor = (line, max(0, column))
        self.events.publish(CursorMoved(window=target.handle, insert_mode=insert_mode))

    def press(self, key: str, *, window: int | None = None) -> bool:
        """Dispatch ``key`` to the buffer-scoped mapping of ``window``.

        Returns:
            True when a mapping handled the key.
        """

        target = self._require_window(window if window is not None else self._current)
        callback = self._buffers[target.buffer].keymaps.get(key)
        if callback is None:
            return False
        callback()
        return True

    def run_deferred(self) -> int:
        """Run every callback deferred so far, shortest delay first."""

        pending, self._deferred = self._deferred, []
        for _delay, callback in sorted(pending, key=lambda item: item[0]):
            callback()
        return len(pending)

    @property
    def pending_deferred(self) -> int:
        return len(self._deferred)

    def window(self, handle: Hashable) -> HeadlessWindow:
        return self._require_window(handle)

    def buffer(self, handle: Hashable) -> HeadlessBuffer:
        try:
            return self._buffers[handle]  # type: ignore[index]
        except KeyError:
            raise KeyError(f"Unknown buffer {handle}") from None

    def panels(self) -> list[int]:
        return [handle for handle, window in self._windows.items() if window.is_panel]

    def buffer_count(self) -> int:
        return len(self._buffers)

    # ------------------------------------------------------------------
    # EditorHost queries
    # ------------------------------------------------------------------
    def current_window(self) -> int | None:
        return self._current

    def current_buffer(self) -> int | None:
        if self._current is None:
            return None
        return self._windows[self._current].buffer

    def cursor_line(self, window: Hashable) -> int:
        return self._require_window(window).cursor[0]

    def diagnostics(self, buffer: Hashable, line: int) -> list[DiagnosticRecord]:
        return self.store.get(buffer, line)

    def diagnostic_config(self) -> Any:
        if self._config_provider is None:
            return None
        return self._config_provider()

    def is_window_valid(self, window: Hashable | None) -> bool:
        return window is not None and window in self._windows

    def is_buffer_valid(self, buffer: Hashable | None) -> bool:
        return buffer is not None and buffer in self._buffers

    def buffer_lines(self, buffer: Hashable) -> list[str]:
        return list(self.buffer(buffer).lines)

    # ------------------------------------------------------------------
    # EditorHost commands
    # ------------------------------------------------------------------
    def create_buffer(self) -> int:
        handle = self._next_buffer
        self._next_buffer += 1
        self._buffers[handle] = HeadlessBuffer(handle=handle)
        return handle

    def set_lines(self, buffer: Hashable, lines: Sequence[str]) -> None:
        target = self.buffer(buffer)
        if not target.options.modifiable:
            raise RuntimeError(f"Buffer {buffer} is not modifiable")
        target.lines = list(lines) or [""]

    def add_highlight(self, buffer: Hashable, span: HighlightSpan) -> None:
        self.buffer(buffer).highlights.append(span)

    def set_buffer_options(self, buffer: Hashable, options: BufferOptions) -> None:
        self.buffer(buffer).options = options

    def start_structural_highlighting(self, buffer: Hashable, language: str) -> None:
        target = self.buffer(buffer)
        target.structural_language = language
        if language == "markdown":
            target.structural_highlights = markdown_highlights(target.lines)

    def open_panel(self, buffer: Hashable, geometry: PanelGeometry) -> int:
        self.buffer(buffer)
        anchor = None
        if self._current is not None:
            line, column = self._windows[self._current].cursor
            anchor = (line + geometry.row, column + geometry.col)
        window = self._new_window(buffer, geometry=geometry, anchor=anchor)  # type: ignore[arg-type]
        if geometry.enter:
            self.enter_window(window)
        return window

    def set_window_options(self, window: Hashable, options: WindowOptions) -> None:
        self._require_window(window).options = options

    def close_panel(self, window: Hashable) -> None:
        target = self._windows.pop(window, None)  # type: ignore[arg-type]
        if target is None:
            return
        buffer = self._buffers.get(target.buffer)
        still_shown = any(other.buffer == target.buffer for other in self._windows.values())
        if buffer is not None and buffer.options.wipe_on_hide and not still_shown:
            del self._buffers[target.buffer]
        if self._previous == window:
            self._previous = None
        if self._current == window:
            self._current = None
            fallback = self._previous if self._previous in self._windows else self._first_editor()
            if fallback is not None:
                self.enter_window(fallback)

    def focus_window(self, window: Hashable) -> None:
        if window in self._windows:
            self.enter_window(window)  # type: ignore[arg-type]

    def scroll_window(self, window: Hashable, pages: int) -> None:
        target = self._require_window(window)
        height = target.geometry.height if target.geometry is not None else 1
        line_count = len(self._buffers[target.buffer].lines)
        limit = max(0, line_count - height)
        target.scroll_offset = max(0, min(limit, target.scroll_offset + pages * height))

    def redraw(self) -> None:
        self.redraw_count += 1

    def defer(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self._deferred.append((delay_ms, callback))

    def map_key(self, buffer: Hashable, key: str, callback: KeyCallback, *, description: str = "") -> None:
        self.buffer(buffer).keymaps[key] = callback
        LOGGER.debug("Mapped %s on buffer %s (%s)", key, buffer, description or "no description")

    def unmap_key(self, buffer: Hashable, key: str) -> None:
        if buffer in self._buffers:
            self._buffers[buffer].keymaps.pop(key, None)  # type: ignore[index]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _new_window(
        self,
        buffer: int,
        *,
        geometry: PanelGeometry | None = None,
        anchor: tuple[int, int] | None = None,
    ) -> int:
        handle = self._next_window
        self._next_window += 1
        self._windows[handle] = HeadlessWindow(handle=handle, buffer=buffer, geometry=geometry, anchor=anchor)
        return handle

    def _require_window(self, window: Hashable | None) -> HeadlessWindow:
        if window is None or window not in self._windows:
            raise KeyError(f"Unknown window {window}")
        return self._windows[window]  # type: ignore[index]

    def _first_editor(self) -> int | None:
        for handle, window in self._windows.items():
            if not window.is_panel:
                return handle
        return None


__all__ = ["HeadlessBuffer", "HeadlessHost", "HeadlessWindow"]
