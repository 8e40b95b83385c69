"""Service layer: settings persistence and diagnostic storage."""

from .diagnostic_store import DiagnosticStore
from .settings import Settings, SettingsStore

__all__ = ["DiagnosticStore", "Settings", "SettingsStore"]
