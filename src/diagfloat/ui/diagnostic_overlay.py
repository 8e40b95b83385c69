"""Line-diagnostics overlay controller.

Owns at most one overlay (a cursor-anchored panel plus its content buffer)
and drives it through the host: ``toggle`` opens it for the current line,
focuses it, or closes it; cursor motion outside the panel, leaving the panel,
or the close key dismiss it.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Hashable

from ..editor.formatter import DiagnosticFormatter
from ..editor.layout import compute_size
from ..editor.reformatters import resolve_hook
from ..services.settings import Settings
from .domain.overlay_state import OverlayPhase, OverlayState
from .events import (
    BufferShown,
    CursorMoved,
    OverlayClosed,
    OverlayOpened,
    Subscription,
    WindowEntered,
)
from .host import BufferOptions, EditorHost, PanelGeometry, WindowOptions

LOGGER = logging.getLogger(__name__)


def create_formatter(settings: Settings, host: EditorHost | None = None) -> DiagnosticFormatter:
    """Build a formatter configured from ``settings``, reading signs from ``host``."""

    config_provider = host.diagnostic_config if host is not None else settings.diagnostic_config
    return DiagnosticFormatter(
        config_provider=config_provider,
        reformat_hook=resolve_hook(settings.reformat_hook),
        reformat_sources=settings.reformat_sources,
        default_source=settings.default_source,
    )


class DiagnosticOverlayController:
    """State machine for the line-diagnostics overlay.

    The controller subscribes to :class:`WindowEntered` on the host's event
    bus for its whole lifetime; the cursor-moved trigger and the transient
    key bindings only exist while an overlay is open.
    """

    def __init__(
        self,
        host: EditorHost,
        formatter: DiagnosticFormatter | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._host = host
        self._settings = settings or Settings()
        self._formatter = formatter or create_formatter(self._settings, host)
        self._state = OverlayState()
        self._triggers: list[Subscription] = []
        self._mapped_keys: list[tuple[Hashable, str]] = []
        self._focus_subscription: Subscription | None = host.events.subscribe(
            WindowEntered, self._on_window_entered
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def phase(self) -> OverlayPhase:
        return self._state.phase

    @property
    def state(self) -> OverlayState:
        return self._state

    @property
    def settings(self) -> Settings:
        return self._settings

    def is_open(self) -> bool:
        return self._live_panel() is not None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def toggle(self) -> None:
        """Show the current line's diagnostics, focus the overlay, or close it."""

        panel = self._live_panel()
        if panel is None:
            self._open()
            return
        if self._host.current_window() == panel:
            self._close("toggle")
            return
        LOGGER.debug("Focusing diagnostic overlay panel=%s", panel)
        self._host.focus_window(panel)

    def close(self) -> None:
        """Close the overlay if one is open. Safe to call repeatedly."""

        self._close("explicit")

    def dispose(self) -> None:
        """Close any overlay and stop listening to host events."""

        self._close("dispose")
        if self._focus_subscription is not None:
            self._focus_subscription.dispose()
            self._focus_subscription = None

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------
    def _open(self) -> None:
        host = self._host
        settings = self._settings
        origin_window = host.current_window()
        origin_buffer = host.current_buffer()
        line = host.cursor_line(origin_window)

        lines, highlights = self._formatter.format_line(host.diagnostics(origin_buffer, line))
        if not lines:
            LOGGER.debug("No diagnostics on line %d of buffer %s", line, origin_buffer)
            return

        buffer = host.create_buffer()
        host.set_lines(buffer, lines)
        for span in highlights:
            host.add_highlight(buffer, span)

        size = compute_size(lines, settings.max_width, tab_width=settings.tab_width)
        geometry = PanelGeometry(
            width=max(1, size.width),
            height=max(1, size.height),
            row=settings.anchor_row,
            col=settings.anchor_col,
            border=settings.border,
        )
        panel = host.open_panel(buffer, geometry)
        host.set_window_options(panel, WindowOptions(wrap=True, linebreak=True))
        host.set_buffer_options(
            buffer,
            BufferOptions(
                readonly=True,
                modifiable=False,
                filetype=settings.filetype,
                wipe_on_hide=True,
            ),
        )
        host.start_structural_highlighting(buffer, settings.filetype)
        self._state.attach(panel, buffer, origin_buffer=origin_buffer)
        LOGGER.debug(
            "Opened diagnostic overlay panel=%s, buffer=%s, size=%dx%d",
            panel,
            buffer,
            geometry.width,
            geometry.height,
        )

        host.defer(settings.render_delay_ms, partial(self._announce_rendered, panel, buffer))
        self._install_keymaps(origin_buffer, buffer)
        self._arm_cursor_trigger()
        host.events.publish(OverlayOpened(panel=panel, buffer=buffer, line_count=len(lines)))

    def _arm_cursor_trigger(self) -> None:
        self._triggers = [subscription for subscription in self._triggers if subscription.active]
        self._triggers.append(self._host.events.subscribe(CursorMoved, self._on_cursor_moved, once=True))

    def _announce_rendered(self, panel: Hashable, buffer: Hashable) -> None:
        if not self._host.is_buffer_valid(buffer) or not self._host.is_window_valid(panel):
            return
        self._host.events.publish(BufferShown(buffer=buffer, window=panel))
        self._host.redraw()

    def _install_keymaps(self, origin_buffer: Hashable, overlay_buffer: Hashable) -> None:
        settings = self._settings
        scroll_keys = (
            (settings.scroll_down_key, 1, "Scroll diagnostics down"),
            (settings.scroll_up_key, -1, "Scroll diagnostics up"),
        )
        for key, pages, description in scroll_keys:
            self._host.map_key(origin_buffer, key, partial(self._scroll, pages), description=description)
            self._mapped_keys.append((origin_buffer, key))
        self._host.map_key(
            overlay_buffer,
            settings.close_key,
            self._on_close_key,
            description="Close diagnostic window",
        )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _scroll(self, pages: int) -> None:
        panel = self._live_panel()
        if panel is not None:
            self._host.scroll_window(panel, pages)

    def _on_close_key(self) -> None:
        if self._live_panel() is not None:
            self._close("close_key")

    def _on_cursor_moved(self, event: CursorMoved) -> None:
        panel = self._state.panel
        if panel is None:
            self._dispose_triggers()
            return
        if event.window == panel:
            self._arm_cursor_trigger()
            return
        self._close("cursor_moved" if self._host.is_window_valid(panel) else "stale")

    def _on_window_entered(self, event: WindowEntered) -> None:
        previous = self._state.last_window
        panel = self._state.panel
        if panel is not None and previous == panel and event.window != panel:
            self._close("window_left" if self._host.is_window_valid(panel) else "stale")
        self._state.last_window = event.window

    # ------------------------------------------------------------------
    # Closing
    # ------------------------------------------------------------------
    def _live_panel(self) -> Any:
        panel = self._state.panel
        if panel is None:
            return None
        if not self._host.is_window_valid(panel):
            self._close("stale")
            return None
        return panel

    def _close(self, reason: str) -> None:
        panel = self._state.panel
        self._dispose_triggers()
        self._unmap_keys()
        self._state.clear()
        if panel is None:
            return
        if self._host.is_window_valid(panel):
            self._host.close_panel(panel)
        LOGGER.debug("Closed diagnostic overlay panel=%s (reason=%s)", panel, reason)
        self._host.events.publish(OverlayClosed(panel=panel, reason=reason))

    def _dispose_triggers(self) -> None:
        triggers, self._triggers = self._triggers, []
        for subscription in triggers:
            subscription.dispose()

    def _unmap_keys(self) -> None:
        mapped, self._mapped_keys = self._mapped_keys, []
        for buffer, key in mapped:
            if self._host.is_buffer_valid(buffer):
                self._host.unmap_key(buffer, key)


__all__ = ["DiagnosticOverlayController", "create_formatter"]
