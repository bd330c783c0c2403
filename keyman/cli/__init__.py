"""Command-line interface for keyman."""

from .main import app, main


__all__ = ["app", "main"]
