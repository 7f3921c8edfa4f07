"""Core worker plumbing."""

from .capabilities import CapabilitySet, probe
from .events import EventKind, HandlerRegistry

__all__ = ["CapabilitySet", "probe", "EventKind", "HandlerRegistry"]
