"""Mindful workspace data engine."""

__version__ = "0.1.0"
