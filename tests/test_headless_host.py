"""Tests for the in-memory editor host."""

from __future__ import annotations

import pytest

from diagfloat.ui.events import CursorMoved, WindowEntered
from diagfloat.ui.headless_host import HeadlessHost
from diagfloat.ui.host import BufferOptions, PanelGeometry


def test_open_editor_focuses_and_publishes() -> None:
    host = HeadlessHost()
    entered: list[WindowEntered] = []
    host.events.subscribe(WindowEntered, entered.append)

    window, buffer = host.open_editor(["a", "b"])

    assert host.current_window() == window
    assert host.current_buffer() == buffer
    assert host.buffer_lines(buffer) == ["a", "b"]
    assert entered == [WindowEntered(window=window)]


def test_move_cursor_clamps_and_publishes(host: HeadlessHost) -> None:
    window, _buffer = host.open_editor(["a", "b"])
    moved: list[CursorMoved] = []
    host.events.subscribe(CursorMoved, moved.append)

    host.move_cursor(10, 2)

    assert host.cursor_line(window) == 1
    assert moved == [CursorMoved(window=window, insert_mode=False)]


def test_set_lines_rejected_when_not_modifiable(host: HeadlessHost) -> None:
    buffer = host.create_buffer()
    host.set_buffer_options(buffer, BufferOptions(modifiable=False))

    with pytest.raises(RuntimeError):
        host.set_lines(buffer, ["x"])


def test_closing_focused_panel_returns_focus(host: HeadlessHost) -> None:
    window, _ = host.open_editor(["a"])
    overlay = host.create_buffer()
    host.set_buffer_options(overlay, BufferOptions(wipe_on_hide=True))
    panel = host.open_panel(overlay, PanelGeometry(width=3, height=1, enter=True))
    assert host.current_window() == panel

    host.close_panel(panel)
    host.close_panel(panel)

    assert host.current_window() == window
    assert not host.is_window_valid(panel)
    assert not host.is_buffer_valid(overlay)


def test_buffer_without_wipe_survives_panel(host: HeadlessHost) -> None:
    host.open_editor(["a"])
    overlay = host.create_buffer()
    panel = host.open_panel(overlay, PanelGeometry(width=3, height=1))

    host.close_panel(panel)

    assert host.is_buffer_valid(overlay)


def test_scroll_window_pages_by_height(host: HeadlessHost) -> None:
    host.open_editor(["a"])
    overlay = host.create_buffer()
    host.set_lines(overlay, [str(n) for n in range(10)])
    panel = host.open_panel(overlay, PanelGeometry(width=2, height=3))

    host.scroll_window(panel, 1)
    assert host.window(panel).scroll_offset == 3
    host.scroll_window(panel, 5)
    assert host.window(panel).scroll_offset == 7
    host.scroll_window(panel, -9)
    assert host.window(panel).scroll_offset == 0


def test_deferred_callbacks_run_by_delay(host: HeadlessHost) -> None:
    calls: list[str] = []
    host.defer(50, lambda: calls.append("late"))
    host.defer(10, lambda: calls.append("early"))

    assert host.run_deferred() == 2
    assert calls == ["early", "late"]
    assert host.pending_deferred == 0


def test_key_mappings_are_buffer_scoped(host: HeadlessHost) -> None:
    first, first_buffer = host.open_editor(["a"])
    second, _ = host.open_editor(["b"])
    calls: list[str] = []
    host.map_key(first_buffer, "K", lambda: calls.append("k"))

    assert not host.press("K", window=second)
    assert host.press("K", window=first)
    host.unmap_key(first_buffer, "K")
    assert not host.press("K", window=first)
    assert calls == ["k"]


def test_unknown_handles_raise(host: HeadlessHost) -> None:
    with pytest.raises(KeyError):
        host.window(42)
    with pytest.raises(KeyError):
        host.buffer(42)
    assert not host.is_window_valid(None)
