"""Domain layer for the overlay UI.

Holds state bookkeeping that has no dependency on Qt or any other host.
"""

from __future__ import annotations

from .overlay_state import OverlayPhase, OverlayState

__all__ = ["OverlayPhase", "OverlayState"]
