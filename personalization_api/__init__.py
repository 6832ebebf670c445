"""HTTP adapter for the personalization core."""

from .app import app, create_app

__all__ = ["app", "create_app"]
