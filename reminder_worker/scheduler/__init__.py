"""Job scheduling."""

from .jobs import setup_scheduler, make_timers, JobQueueTimers, AsyncioTimers

__all__ = ["setup_scheduler", "make_timers", "JobQueueTimers", "AsyncioTimers"]
