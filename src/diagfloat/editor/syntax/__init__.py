"""Structural highlighters for overlay content."""
