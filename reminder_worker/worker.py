"""Assembly of the background reminder worker."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

import requests

from reminder_worker.config import WorkerConfig
from reminder_worker.core.capabilities import probe
from reminder_worker.core.events import EventKind, HandlerRegistry
from reminder_worker.core.lifecycle import WorkerLifecycle, WorkerVersion
from reminder_worker.errors import InstallFailed
from reminder_worker.scheduler.jobs import make_timers
from reminder_worker.services import (
    ActionRouter,
    DisplayedNotification,
    ForegroundBridge,
    NotificationDispatcher,
    NotificationSurface,
    OfflineCacheManager,
    ReminderStore,
    SyncCoordinator,
    TimerRegistry,
)
from reminder_worker.services.cache import CachedResponse

logger = logging.getLogger(__name__)


class ReminderWorker:
    """Wires every component together and exposes them as event handlers."""

    def __init__(
        self,
        config: WorkerConfig,
        surface: NotificationSurface,
        opener,
        job_queue=None,
        http: requests.Session = None,
        clock: Callable[[], datetime] = None,
    ):
        self.config = config
        self.surface = surface
        self.capabilities = probe(surface=surface, job_queue=job_queue)

        self.store = ReminderStore(config.store_path, config.store_key)
        self.dispatcher = NotificationDispatcher(surface, self.capabilities, config)
        self.sync = SyncCoordinator(self.store, self.dispatcher, config, clock=clock)
        self.router = ActionRouter(surface, opener, config)

        self._http = http or requests.Session()
        self.lifecycle = WorkerLifecycle(cache_factory=lambda c: OfflineCacheManager(c, self._http))
        self._default_cache = OfflineCacheManager(config, self._http)

        self.timers = TimerRegistry(make_timers(job_queue))
        self.bridge = ForegroundBridge(
            self.dispatcher, self.timers, self.capabilities, self.lifecycle.skip_waiting
        )

        self.registry = HandlerRegistry()
        self._register_handlers()

    def _register_handlers(self):
        self.registry.register(EventKind.INSTALL, self.handle_install)
        self.registry.register(EventKind.ACTIVATE, self.handle_activate)
        self.registry.register(EventKind.FETCH, self.handle_fetch)
        self.registry.register(EventKind.PUSH, self.handle_push)
        self.registry.register(EventKind.NOTIFICATION_CLICK, self.handle_notification_click)
        self.registry.register(EventKind.SYNC, self.sync.on_one_shot_sync)
        self.registry.register(EventKind.PERIODIC_SYNC, self.sync.on_periodic_sync)
        self.registry.register(EventKind.MESSAGE, self.bridge.on_message)

    async def emit(self, kind: EventKind, *args, **kwargs) -> Any:
        return await self.registry.emit(kind, *args, **kwargs)

    @property
    def cache(self) -> OfflineCacheManager:
        """Cache of the active version, or of the configured one before any activation."""
        if self.lifecycle.active is not None:
            return self.lifecycle.active.cache
        return self._default_cache

    async def handle_install(self, version: Optional[str] = None) -> WorkerVersion:
        """Install the configured version, or ``version`` of the same cache family."""
        config = self.config.with_version(version) if version else self.config
        return await self.lifecycle.install(config)

    async def handle_activate(self) -> Optional[WorkerVersion]:
        return await self.lifecycle.activate()

    async def handle_fetch(self, path: str, method: str = "GET") -> CachedResponse:
        return await asyncio.to_thread(self.cache.serve, path, method)

    async def handle_push(self, payload: Optional[str] = None) -> bool:
        return await self.dispatcher.dispatch_push(payload)

    async def handle_notification_click(self, tag: str, action: Optional[str] = None) -> str:
        notification = self.surface.get(tag)
        if notification is None:
            # Clicked after a restart: the tag of a reminder notification is its id
            logger.debug(f"Notification '{tag}' is not live, routing by tag")
            notification = DisplayedNotification(
                title="",
                body="",
                tag=tag,
                icon=self.config.icon,
                badge=self.config.badge,
                data={"reminderId": tag},
            )
        return await self.router.on_notification_click(notification, action)

    async def startup(self):
        """Install the configured version. A failed install leaves the worker running."""
        try:
            await self.emit(EventKind.INSTALL)
        except InstallFailed as e:
            logger.warning(f"Offline cache not installed, assets will be fetched from the network: {e}")

    def shutdown(self):
        self.timers.cancel_all()
        logger.info("Reminder worker stopped")
