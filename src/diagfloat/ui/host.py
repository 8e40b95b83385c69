"""Host editor interface consumed by the overlay controller.

Any editor shell that can create a floating panel, fill and style a content
buffer, report focus/cursor events and defer a callback can drive the
line-diagnostics overlay by implementing :class:`EditorHost`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Protocol, runtime_checkable

from ..core.diagnostics import DiagnosticRecord, HighlightSpan
from .events import EventBus

WindowId = Hashable
BufferId = Hashable
KeyCallback = Callable[[], None]


@dataclass(slots=True, frozen=True)
class PanelGeometry:
    """Placement of a cursor-anchored panel, in character cells."""

    width: int
    height: int
    row: int = 1
    col: int = 0
    border: str = "rounded"
    style: str = "minimal"
    focusable: bool = True
    enter: bool = False


@dataclass(slots=True, frozen=True)
class BufferOptions:
    """Buffer flags the overlay sets once its content is written."""

    readonly: bool = False
    modifiable: bool = True
    filetype: str | None = None
    wipe_on_hide: bool = False


@dataclass(slots=True, frozen=True)
class WindowOptions:
    """Window flags applied to the overlay panel."""

    wrap: bool = True
    linebreak: bool = True


@runtime_checkable
class EditorHost(Protocol):
    """Operations the overlay controller needs from the hosting editor."""

    events: EventBus[Any]

    # Queries ------------------------------------------------------------
    def current_window(self) -> WindowId:
        ...

    def current_buffer(self) -> BufferId:
        ...

    def cursor_line(self, window: WindowId) -> int:
        """Return the 0-indexed cursor line of ``window``."""
        ...

    def diagnostics(self, buffer: BufferId, line: int) -> Sequence[DiagnosticRecord]:
        ...

    def diagnostic_config(self) -> Any:
        """Return the host's diagnostic configuration (may be ``None``)."""
        ...

    def is_window_valid(self, window: WindowId | None) -> bool:
        ...

    def is_buffer_valid(self, buffer: BufferId | None) -> bool:
        ...

    def buffer_lines(self, buffer: BufferId) -> list[str]:
        ...

    # Content ------------------------------------------------------------
    def create_buffer(self) -> BufferId:
        ...

    def set_lines(self, buffer: BufferId, lines: Sequence[str]) -> None:
        ...

    def add_highlight(self, buffer: BufferId, span: HighlightSpan) -> None:
        ...

    def set_buffer_options(self, buffer: BufferId, options: BufferOptions) -> None:
        ...

    def start_structural_highlighting(self, buffer: BufferId, language: str) -> None:
        ...

    # Panels -------------------------------------------------------------
    def open_panel(self, buffer: BufferId, geometry: PanelGeometry) -> WindowId:
        ...

    def set_window_options(self, window: WindowId, options: WindowOptions) -> None:
        ...

    def close_panel(self, window: WindowId) -> None:
        """Close ``window``; buffers marked wipe-on-hide are discarded with it."""
        ...

    def focus_window(self, window: WindowId) -> None:
        ...

    def scroll_window(self, window: WindowId, pages: int) -> None:
        """Scroll ``window`` by whole pages without moving focus."""
        ...

    def redraw(self) -> None:
        ...

    # Scheduling & key bindings -----------------------------------------
    def defer(self, delay_ms: int, callback: Callable[[], None]) -> None:
        ...

    def map_key(self, buffer: BufferId, key: str, callback: KeyCallback, *, description: str = "") -> None:
        ...

    def unmap_key(self, buffer: BufferId, key: str) -> None:
        ...


__all__ = [
    "BufferId",
    "BufferOptions",
    "EditorHost",
    "KeyCallback",
    "PanelGeometry",
    "WindowId",
    "WindowOptions",
]
