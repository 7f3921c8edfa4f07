"""Telegram bot host."""

from .main import create_bot, build_worker, attach_worker

__all__ = ["create_bot", "build_worker", "attach_worker"]
