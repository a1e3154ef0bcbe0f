"""API layer for the echo server."""

from .app import create_app


__all__ = ["create_app"]
