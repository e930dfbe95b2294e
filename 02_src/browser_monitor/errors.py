"""Typed failures surfaced to control-surface callers."""


class MonitorError(Exception):
    """Base class for browser monitor failures."""


class CDPConnectionError(MonitorError, ConnectionError):
    """The DevTools endpoint (or the primary page target) is unreachable."""


class NoTargetError(MonitorError):
    """The DevTools endpoint lists no eligible page targets."""


class StorageNotInitializedError(MonitorError, RuntimeError):
    """A store operation was called before init() or after close()."""

    def __init__(self, message: str = "Storage not initialized"):
        super().__init__(message)
