"""Overlay state bookkeeping for the line-diagnostics controller.

Tracks the single overlay (panel + content buffer) a controller may own and
the last focused window. Independent of any host implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Hashable

LOGGER = logging.getLogger(__name__)


class OverlayPhase(Enum):
    """Lifecycle phases of the overlay."""

    CLOSED = "closed"
    OPEN = "open"


@dataclass(slots=True)
class OverlayState:
    """Handles of the open overlay.

    ``panel`` and ``buffer`` are either both set or both ``None``; use
    :meth:`attach` and :meth:`clear` rather than assigning them directly.
    ``last_window`` is tracked independently for focus-change detection.
    """

    panel: Hashable | None = None
    buffer: Hashable | None = None
    origin_buffer: Hashable | None = None
    last_window: Hashable | None = None

    @property
    def is_attached(self) -> bool:
        return self.panel is not None

    @property
    def phase(self) -> OverlayPhase:
        return OverlayPhase.OPEN if self.is_attached else OverlayPhase.CLOSED

    def attach(
        self,
        panel: Hashable,
        buffer: Hashable,
        *,
        origin_buffer: Hashable | None = None,
    ) -> None:
        """Record a freshly opened overlay.

        Raises:
            ValueError: if either handle is missing or an overlay is already attached.
        """
        if panel is None or buffer is None:
            raise ValueError("Overlay panel and buffer must be attached together")
        if self.is_attached:
            raise ValueError("An overlay is already attached")
        self.panel = panel
        self.buffer = buffer
        self.origin_buffer = origin_buffer
        LOGGER.debug("OverlayState.attach: panel=%s, buffer=%s", panel, buffer)

    def clear(self) -> None:
        """Forget the overlay handles. Leaves ``last_window`` untouched."""
        if self.is_attached:
            LOGGER.debug("OverlayState.clear: panel=%s, buffer=%s", self.panel, self.buffer)
        self.panel = None
        self.buffer = None
        self.origin_buffer = None


__all__ = ["OverlayPhase", "OverlayState"]
