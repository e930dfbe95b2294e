"""Core data models for Browser Monitor."""

from .events import (
    EventKind,
    LoadFailed,
    LoadFinished,
    NetworkEvent,
    RequestStarted,
    ResponseReceived,
)
from .network import NetworkRequest, RequestFilter, RequestQuery, RequestStats

__all__ = [
    # Requests
    "NetworkRequest",
    "RequestFilter",
    "RequestQuery",
    "RequestStats",
    # Events
    "EventKind",
    "NetworkEvent",
    "RequestStarted",
    "ResponseReceived",
    "LoadFinished",
    "LoadFailed",
]
