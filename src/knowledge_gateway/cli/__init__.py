"""Command line interface for the knowledge gateway."""

from .main import app, main


__all__ = ["app", "main"]
