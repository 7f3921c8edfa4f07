"""Scheduled jobs: periodic reminder checks and delayed deliveries."""

import asyncio
import logging

from reminder_worker.core.events import EventKind

logger = logging.getLogger(__name__)


class JobQueueTimers:
    """Timer backend on top of python-telegram-bot's JobQueue."""

    def __init__(self, job_queue):
        self.job_queue = job_queue

    def start(self, delay: float, fire, name: str = None):
        async def callback(context):
            await fire()

        return self.job_queue.run_once(callback, when=delay, name=name)

    def cancel(self, job):
        job.schedule_removal()


class AsyncioTimers:
    """Timer backend using the running event loop. Used when there is no JobQueue."""

    def __init__(self):
        self._tasks = set()

    def start(self, delay: float, fire, name: str = None):
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self._spawn, fire, name)

    def _spawn(self, fire, name):
        task = asyncio.ensure_future(fire())
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self, handle):
        handle.cancel()


def make_timers(job_queue=None):
    """Pick the timer backend for the host."""
    if job_queue is not None:
        return JobQueueTimers(job_queue)
    return AsyncioTimers()


def setup_scheduler(app, worker):
    """Register the periodic reminder check on the bot's job queue."""
    if not worker.capabilities.periodic_sync:
        logger.info("Periodic sync unavailable (no job queue), relying on explicit sync requests")
        return None

    config = worker.config
    tag = config.periodic_sync_tag

    async def periodic_check(context):
        await worker.emit(EventKind.PERIODIC_SYNC, tag)

    job = app.job_queue.run_repeating(
        periodic_check,
        interval=config.periodic_sync_interval * 60,
        first=10,  # Start after 10 seconds
        name=tag,
    )

    logger.info(f"Periodic reminder check '{tag}' every {config.periodic_sync_interval} minutes")
    logger.info("Scheduler setup complete")
    return job
