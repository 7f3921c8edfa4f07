"""Install and activation lifecycle of worker versions.

A version is identified by its cache name. Installing a version fills its
offline cache; the version then waits until no foreground client is attached
(or until the foreground asks it to take over) before it becomes active.
Activating a version removes the caches of every other version.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from reminder_worker.config import WorkerConfig
from reminder_worker.errors import InstallFailed
from reminder_worker.services.cache import OfflineCacheManager

logger = logging.getLogger(__name__)


class VersionState(enum.Enum):
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


@dataclass
class WorkerVersion:
    config: WorkerConfig
    cache: OfflineCacheManager
    state: VersionState = VersionState.INSTALLING

    @property
    def name(self) -> str:
        return self.config.cache_name

    def __repr__(self):
        return f"<WorkerVersion(name='{self.name}', state={self.state.value})>"


class WorkerLifecycle:
    """Tracks the active and waiting worker versions and the attached clients."""

    def __init__(self, cache_factory: Callable[[WorkerConfig], OfflineCacheManager] = OfflineCacheManager):
        self.cache_factory = cache_factory
        self.active: Optional[WorkerVersion] = None
        self.waiting: Optional[WorkerVersion] = None
        self.clients: Set[str] = set()
        self._listeners: List[Callable[[WorkerVersion], None]] = []

    def on_activate(self, listener: Callable[[WorkerVersion], None]):
        """Register a callback run with the newly active version."""
        self._listeners.append(listener)

    async def install(self, config: WorkerConfig) -> WorkerVersion:
        """
        Install a version and fill its offline cache.

        The first version activates straight away. Later versions wait while
        foreground clients are attached.

        Raises:
            InstallFailed: The cache could not be filled. The active version,
                if any, stays in charge.
        """
        version = WorkerVersion(config=config, cache=self.cache_factory(config))
        logger.info(f"Installing {version.name}")

        try:
            await asyncio.to_thread(version.cache.install)
        except InstallFailed as e:
            version.state = VersionState.REDUNDANT
            logger.error(f"Install of {version.name} failed: {e}")
            raise

        version.state = VersionState.INSTALLED
        if self.waiting is not None:
            self.waiting.state = VersionState.REDUNDANT
        self.waiting = version

        if self.active is None or not self.clients:
            await self.activate()
        else:
            logger.info(f"{version.name} installed, waiting for {len(self.clients)} client(s) to close")
        return version

    async def activate(self) -> Optional[WorkerVersion]:
        """Promote the waiting version, if any, to active."""
        version = self.waiting
        if version is None:
            return None

        version.state = VersionState.ACTIVATING
        await asyncio.to_thread(version.cache.purge_stale)

        if self.active is not None:
            self.active.state = VersionState.REDUNDANT
        self.active = version
        self.waiting = None
        version.state = VersionState.ACTIVATED

        # Attached clients are now served by the new version
        logger.info(f"Activated {version.name}, controlling {len(self.clients)} client(s)")
        for listener in self._listeners:
            listener(version)
        return version

    async def skip_waiting(self) -> Optional[WorkerVersion]:
        """Let the waiting version take control without waiting for clients to close."""
        if self.waiting is None:
            logger.debug("Activation requested but no version is waiting")
            return None
        return await self.activate()

    def client_connected(self, client_id: str):
        self.clients.add(client_id)
        logger.debug(f"Client {client_id} attached ({len(self.clients)} total)")

    async def client_disconnected(self, client_id: str) -> Optional[WorkerVersion]:
        """Detach a client; activates the waiting version once the last one leaves."""
        self.clients.discard(client_id)
        logger.debug(f"Client {client_id} detached ({len(self.clients)} left)")
        if not self.clients and self.waiting is not None:
            return await self.activate()
        return None
