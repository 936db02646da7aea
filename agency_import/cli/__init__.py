"""Command-line surface (``agency-import``)."""

from .__main__ import main

__all__ = ["main"]
