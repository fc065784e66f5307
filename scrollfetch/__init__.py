"""Render lazily loading pages in a remote browser."""

__version__ = "0.1.0"
