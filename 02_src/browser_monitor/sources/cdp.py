"""Chrome DevTools Protocol event source.

Targets are discovered through the DevTools HTTP endpoint; each eligible
page gets its own websocket with the Network domain enabled.
"""

import asyncio
import json
from typing import Any

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import CDPConnectionError, NoTargetError
from ..logging_config import get_logger, request_context
from ..models import (
    EventKind,
    LoadFailed,
    LoadFinished,
    NetworkEvent,
    RequestStarted,
    ResponseReceived,
)
from .base import EventHandler

logger = get_logger(__name__)


def parse_event(method: str, params: dict[str, Any], prefix: str = "") -> NetworkEvent | None:
    """Turn a CDP notification into an event, or None if it is not one of ours."""
    request_id = params.get("requestId")
    if not request_id:
        return None
    request_id = f"{prefix}{request_id}"

    if method == EventKind.REQUEST_STARTED:
        request = params.get("request") or {}
        return RequestStarted(
            request_id=request_id,
            method=request.get("method", ""),
            url=request.get("url", ""),
            headers=request.get("headers") or {},
            type=params.get("type") or "",
            body=request.get("postData"),
        )
    if method == EventKind.RESPONSE_RECEIVED:
        response = params.get("response") or {}
        return ResponseReceived(
            request_id=request_id,
            status=int(response.get("status") or 0),
            headers=response.get("headers") or {},
        )
    if method == EventKind.LOAD_FINISHED:
        return LoadFinished(
            request_id=request_id,
            encoded_data_length=int(params.get("encodedDataLength") or 0),
        )
    if method == EventKind.LOAD_FAILED:
        return LoadFailed(request_id=request_id, error_text=params.get("errorText"))
    return None


def eligible_targets(targets: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Regular pages only: no DevTools windows, workers or extensions."""
    return [
        t
        for t in targets
        if t.get("type") == "page"
        and t.get("webSocketDebuggerUrl")
        and not str(t.get("url", "")).startswith("devtools://")
        and not str(t.get("title") or "").startswith("DevTools")
    ]


class CDPEventSource:
    """Network events from every eligible page of a debuggable browser.

    The first page is the primary target and its request ids are used as-is.
    Ids from additional pages are prefixed with "[<title>] ".
    """

    def __init__(
        self,
        host: str,
        port: int,
        handler: EventHandler,
        timeout: float = 5.0,
    ):
        self._host = host
        self._port = port
        self._handler = handler
        self._timeout = timeout
        self._sockets: list[Any] = []
        self._tasks: list[asyncio.Task] = []
        self._next_id = 0

    @property
    def endpoint(self) -> str:
        return f"http://{self._host}:{self._port}"

    async def list_targets(self) -> list[dict[str, Any]]:
        """Fetch /json/list from the DevTools endpoint."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self.endpoint}/json/list")
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CDPConnectionError(
                f"No debuggable browser at {self.endpoint}: {e}"
            ) from e

    async def connect(self) -> None:
        """Connect to all eligible pages and start reading their events."""
        targets = eligible_targets(await self.list_targets())
        if not targets:
            raise NoTargetError(f"No page targets available at {self.endpoint}")

        primary, *additional = targets
        logger.info(
            "Monitoring page %s",
            primary.get("url"),
            extra=request_context(target=primary.get("title"), endpoint=self.endpoint),
        )
        try:
            await self._attach(primary, prefix="")
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            await self.close()
            raise CDPConnectionError(
                f"Failed to connect to page {primary.get('title')!r}: {e}"
            ) from e

        for target in additional:
            title = target.get("title") or target.get("id", "")
            try:
                await self._attach(target, prefix=f"[{title}] ")
                logger.info(
                    "Monitoring additional page %s",
                    target.get("url"),
                    extra=request_context(target=title),
                )
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.error(
                    "Failed to connect to page: %s", e, extra=request_context(target=title)
                )

    async def close(self) -> None:
        """Stop readers and close every websocket."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error("CDP reader failed: %s", e)

        sockets, self._sockets = self._sockets, []
        for ws in sockets:
            try:
                await ws.close()
            except (OSError, WebSocketException) as e:
                logger.debug("Error closing websocket: %s", e)

    async def _attach(self, target: dict[str, Any], prefix: str) -> None:
        ws = await websockets.connect(
            target["webSocketDebuggerUrl"],
            max_size=None,
            open_timeout=self._timeout,
        )
        self._sockets.append(ws)
        await self._send(ws, "Network.enable")
        self._tasks.append(asyncio.create_task(self._read(ws, prefix)))

    async def _send(self, ws: Any, method: str, params: dict | None = None) -> None:
        self._next_id += 1
        await ws.send(json.dumps({"id": self._next_id, "method": method, "params": params or {}}))

    async def _read(self, ws: Any, prefix: str) -> None:
        target = prefix.strip()[1:-1] or None
        try:
            async for message in ws:
                await self.dispatch(message, prefix)
        except ConnectionClosed:
            logger.info("CDP connection closed", extra=request_context(target=target))

    async def dispatch(self, message: str | bytes, prefix: str = "") -> None:
        """Parse one websocket frame and hand a network event to the handler.

        Anything that is not a JSON object carrying a known notification is
        dropped; handler errors are logged and never end the reader.
        """
        try:
            data = json.loads(message)
        except ValueError:
            logger.debug("Dropping non-JSON CDP message")
            return
        if not isinstance(data, dict):
            logger.debug("Dropping CDP frame of type %s", type(data).__name__)
            return

        method = data.get("method")
        params = data.get("params")
        if not method or not isinstance(params, dict):
            return  # command responses
        event = parse_event(method, params, prefix)
        if event is None:
            return

        try:
            await self._handler(event)
        except Exception as e:
            logger.error(
                "Error handling CDP event: %s",
                e,
                extra=request_context(event.request_id, event=method),
            )
