"""Command line interface for the echo server."""

from .main import app, main


__all__ = ["app", "main"]
