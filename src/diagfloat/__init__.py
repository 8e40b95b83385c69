"""diagfloat: line-diagnostics overlay for text editors."""

__version__ = "0.1.0"
