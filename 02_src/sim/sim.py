"""SIM implementation - replays a hardcoded CDP scenario."""

import asyncio
import random
from typing import Any, Protocol

from browser_monitor.logging_config import get_logger, request_context
from browser_monitor.sources import EventHandler, parse_event

logger = get_logger(__name__)

CDPMessage = tuple[str, dict[str, Any]]

# Raw CDP notifications. Follow-up events are deliberately out of order and
# some requests never finish.
DEFAULT_SCENARIO: list[CDPMessage] = [
    (
        "Network.requestWillBeSent",
        {
            "requestId": "1000.1",
            "type": "Document",
            "request": {
                "method": "GET",
                "url": "https://example.com/",
                "headers": {"Accept": "text/html"},
            },
        },
    ),
    (
        "Network.requestWillBeSent",
        {
            "requestId": "1000.2",
            "type": "XHR",
            "request": {
                "method": "POST",
                "url": "https://api.example.com/v1/items",
                "headers": {"Content-Type": "application/json"},
                "postData": '{"name": "widget"}',
            },
        },
    ),
    (
        "Network.responseReceived",
        {
            "requestId": "1000.1",
            "response": {"status": 200, "headers": {"content-type": "text/html"}},
        },
    ),
    ("Network.loadingFinished", {"requestId": "1000.2", "encodedDataLength": 512}),
    (
        "Network.responseReceived",
        {
            "requestId": "1000.2",
            "response": {
                "status": 201,
                "headers": {"Content-Type": "application/json"},
            },
        },
    ),
    ("Network.loadingFinished", {"requestId": "1000.1", "encodedDataLength": 20480}),
    (
        "Network.requestWillBeSent",
        {
            "requestId": "1000.3",
            "type": "Fetch",
            "request": {
                "method": "GET",
                "url": "https://cdn.other.com/app.js",
                "headers": {},
            },
        },
    ),
    (
        "Network.loadingFailed",
        {"requestId": "1000.3", "errorText": "net::ERR_CONNECTION_REFUSED"},
    ),
    (
        "Network.requestWillBeSent",
        {
            "requestId": "1000.4",
            "type": "Fetch",
            "request": {
                "method": "GET",
                "url": "https://api.example.com/v1/slow",
                "headers": {},
            },
        },
    ),
    # Never started: must be ignored by the tracker
    ("Network.loadingFinished", {"requestId": "9999.1", "encodedDataLength": 1}),
]


class ISim(Protocol):
    """Generate request lifecycle events without a browser."""

    async def connect(self) -> None:
        """Start replaying the scenario."""
        ...

    async def close(self) -> None:
        """Stop replaying."""
        ...


class Sim:
    """Event source that replays CDP notifications from a fixed scenario."""

    def __init__(
        self,
        host: str,
        port: int,
        handler: EventHandler,
        scenario: list[CDPMessage] | None = None,
        max_delay: float = 0.0,
    ):
        self._host = host
        self._port = port
        self._handler = handler
        self._scenario = DEFAULT_SCENARIO if scenario is None else scenario
        self._max_delay = max_delay
        self._task: asyncio.Task | None = None

    async def connect(self) -> None:
        """Start the scenario as a background task."""
        if self._task and not self._task.done():
            return
        logger.info("SIM: replaying %s events", len(self._scenario))
        self._task = asyncio.create_task(self.replay())

    async def close(self) -> None:
        """Stop the scenario."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def wait(self) -> None:
        """Wait until the scenario has been fully delivered."""
        if self._task:
            await asyncio.shield(self._task)

    async def replay(self) -> None:
        """Deliver every scenario event in order."""
        for method, params in self._scenario:
            if self._max_delay:
                await asyncio.sleep(random.uniform(0, self._max_delay))
            event = parse_event(method, params)
            if event is None:
                continue
            try:
                await self._handler(event)
            except Exception as e:
                logger.error(
                    "SIM: handler failed for %s: %s",
                    method,
                    e,
                    extra=request_context(event.request_id, event=method),
                )
