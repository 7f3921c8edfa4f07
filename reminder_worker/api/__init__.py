"""HTTP API for the foreground application."""

from .main import app, set_worker

__all__ = ["app", "set_worker"]
