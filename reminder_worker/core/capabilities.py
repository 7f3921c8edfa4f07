"""One-shot detection of what the host can do."""

import asyncio
import logging
from dataclasses import dataclass

from reminder_worker.errors import UnsupportedCapability

logger = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"
PERIODIC_SYNC = "periodic_sync"
DELAYED_SCHEDULING = "delayed_scheduling"


@dataclass(frozen=True)
class CapabilitySet:
    """Host features detected at startup. Read-only afterwards."""
    notifications: bool = False
    periodic_sync: bool = False
    delayed_scheduling: bool = False

    def require(self, name: str):
        """Raise UnsupportedCapability if ``name`` is not available."""
        if not getattr(self, name, False):
            raise UnsupportedCapability(name)

    def describe(self) -> str:
        flags = [
            f"{name}={'yes' if getattr(self, name) else 'no'}"
            for name in (NOTIFICATIONS, PERIODIC_SYNC, DELAYED_SCHEDULING)
        ]
        return ", ".join(flags)


def _safe(check, name: str) -> bool:
    try:
        return bool(check())
    except Exception as e:
        logger.debug(f"Capability probe for {name} failed: {e}")
        return False


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def probe(surface=None, job_queue=None) -> CapabilitySet:
    """
    Detect host capabilities.

    Args:
        surface: Notification surface, available when its ``available`` flag is set
        job_queue: python-telegram-bot JobQueue, or None when the job-queue
            extra is not installed

    Returns:
        Immutable CapabilitySet; an absent or broken feature maps to False
    """
    capabilities = CapabilitySet(
        notifications=_safe(lambda: surface is not None and surface.available, NOTIFICATIONS),
        periodic_sync=_safe(lambda: job_queue is not None, PERIODIC_SYNC),
        delayed_scheduling=_safe(
            lambda: job_queue is not None or _has_running_loop(), DELAYED_SCHEDULING
        ),
    )
    logger.info(f"Host capabilities: {capabilities.describe()}")
    return capabilities
