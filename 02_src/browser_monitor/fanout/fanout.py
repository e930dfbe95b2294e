"""Best-effort fan-out of merged requests to subscribers."""

import asyncio
from typing import Awaitable, Callable, Protocol

from ..logging_config import get_logger, request_context
from ..models import NetworkRequest

logger = get_logger(__name__)


RequestHandler = Callable[[NetworkRequest], Awaitable[None]]


class IRequestFanOut(Protocol):
    """In-memory subscriber list for merged NetworkRequests."""

    def subscribe(self, handler: RequestHandler) -> None:
        """Register a subscriber."""
        ...

    def unsubscribe(self, handler: RequestHandler) -> None:
        """Remove a subscriber. Unknown handlers are ignored."""
        ...

    async def publish(self, request: NetworkRequest) -> None:
        """Deliver a request to every subscriber once."""
        ...


class RequestFanOut:
    """In-memory fan-out; a failing subscriber never affects the others."""

    def __init__(self) -> None:
        self._subscribers: list[RequestHandler] = []

    def subscribe(self, handler: RequestHandler) -> None:
        """Register a subscriber."""
        self._subscribers.append(handler)

    def unsubscribe(self, handler: RequestHandler) -> None:
        """Remove a subscriber. Unknown handlers are ignored."""
        try:
            self._subscribers.remove(handler)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, request: NetworkRequest) -> None:
        """Call all subscribers concurrently and log their failures."""
        handlers = list(self._subscribers)
        if not handlers:
            return

        results = await asyncio.gather(
            *[handler(request) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(
                    "Error in subscriber %s: %s",
                    i,
                    result,
                    extra=request_context(request.id),
                )
