"""Fan-out module."""

from .fanout import IRequestFanOut, RequestFanOut, RequestHandler
from .feed import LiveFeed

__all__ = ["IRequestFanOut", "LiveFeed", "RequestFanOut", "RequestHandler"]
