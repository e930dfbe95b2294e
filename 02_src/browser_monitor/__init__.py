"""Browser Monitor: CDP network request tracking and history."""

from .errors import (
    CDPConnectionError,
    MonitorError,
    NoTargetError,
    StorageNotInitializedError,
)
from .fanout import IRequestFanOut, LiveFeed, RequestFanOut
from .models import (
    EventKind,
    LoadFailed,
    LoadFinished,
    NetworkRequest,
    RequestFilter,
    RequestQuery,
    RequestStarted,
    RequestStats,
    ResponseReceived,
)
from .monitor import IMonitor, Monitor
from .sources import CDPEventSource, IEventSource
from .storage import IRequestStore, RequestStore
from .tracker import IRequestTracker, RequestTracker

__all__ = [
    # Monitor
    "Monitor",
    "IMonitor",
    # Models
    "NetworkRequest",
    "RequestFilter",
    "RequestQuery",
    "RequestStats",
    "EventKind",
    "RequestStarted",
    "ResponseReceived",
    "LoadFinished",
    "LoadFailed",
    # Components
    "IRequestStore",
    "RequestStore",
    "IRequestFanOut",
    "RequestFanOut",
    "LiveFeed",
    "IRequestTracker",
    "RequestTracker",
    "IEventSource",
    "CDPEventSource",
    # Errors
    "MonitorError",
    "CDPConnectionError",
    "NoTargetError",
    "StorageNotInitializedError",
]
