"""UI package: event bus, host interface and the overlay controller."""

from .diagnostic_overlay import DiagnosticOverlayController, create_formatter
from .events import EventBus
from .headless_host import HeadlessHost
from .host import EditorHost

__all__ = [
    # Event Bus
    "EventBus",
    # Hosts
    "EditorHost",
    "HeadlessHost",
    # Overlay
    "DiagnosticOverlayController",
    "create_formatter",
]
