"""Error taxonomy for the reminder worker."""


class WorkerError(Exception):
    """Base class for reminder worker errors."""


class InstallFailed(WorkerError):
    """A manifest resource could not be fetched while installing the offline cache."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to cache {path}: {reason}")


class NetworkUnavailable(WorkerError):
    """A request missed the cache and the network fetch failed too."""

    def __init__(self, path: str, reason: str = None):
        self.path = path
        self.reason = reason
        message = f"{path} is not cached and the network is unavailable"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class SyncEvaluationFailed(WorkerError):
    """Reading the store, evaluating or dispatching failed during a sync pass."""


class UnsupportedCapability(WorkerError):
    """A host capability required for a behavior is not available."""


class MalformedMessage(WorkerError):
    """A foreground message could not be interpreted."""
