"""Event sources feeding the request tracker."""

from .base import EventHandler, EventSourceFactory, IEventSource
from .cdp import CDPEventSource, eligible_targets, parse_event

__all__ = [
    "CDPEventSource",
    "EventHandler",
    "EventSourceFactory",
    "IEventSource",
    "eligible_targets",
    "parse_event",
]
