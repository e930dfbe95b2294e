"""Event source interface."""

from typing import Awaitable, Callable, Protocol

from ..models import NetworkEvent

EventHandler = Callable[[NetworkEvent], Awaitable[None]]


class IEventSource(Protocol):
    """Delivers request lifecycle events for one tracking session."""

    async def connect(self) -> None:
        """Attach and start delivering events to the handler."""
        ...

    async def close(self) -> None:
        """Detach. Safe to call more than once."""
        ...


EventSourceFactory = Callable[[str, int, EventHandler], IEventSource]
