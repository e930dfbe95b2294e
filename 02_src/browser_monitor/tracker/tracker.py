"""Request tracker: merges lifecycle events into one record per request id."""

import asyncio
import re
from datetime import datetime, timezone
from typing import Callable, Protocol

from ..fanout import IRequestFanOut
from ..logging_config import get_logger, request_context
from ..models import (
    LoadFailed,
    LoadFinished,
    NetworkEvent,
    NetworkRequest,
    RequestFilter,
    RequestStarted,
    ResponseReceived,
)

logger = get_logger(__name__)

UNKNOWN_ERROR = "unknown error"

Recorder = Callable[[NetworkRequest], None]


class IRequestTracker(Protocol):
    """Live table of in-flight requests. Two channels: fan-out + recorder."""

    async def handle(self, event: NetworkEvent) -> None:
        """Apply one lifecycle event."""
        ...

    def set_filter(self, request_filter: RequestFilter) -> None:
        """Replace the fan-out filter."""
        ...

    def snapshot_all(self) -> list[NetworkRequest]:
        """All tracked requests, regardless of filter."""
        ...

    def clear(self) -> None:
        """Drop every tracked request."""
        ...


class RequestTracker:
    """Merges partial CDP events into NetworkRequest records.

    Merges for the same request id are serialized by a per-id lock so that
    merge-then-publish is atomic per id; different ids run independently.
    Events for ids that were never started (or were cleared) are ignored.
    """

    def __init__(
        self,
        fanout: IRequestFanOut,
        recorder: Recorder | None = None,
    ):
        self._fanout = fanout
        self._recorder = recorder
        self._requests: dict[str, NetworkRequest] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._filter = RequestFilter()
        self._pattern: re.Pattern | None = None
        self._pattern_invalid = False

    # Filter

    @property
    def request_filter(self) -> RequestFilter:
        return self._filter

    def set_filter(self, request_filter: RequestFilter) -> None:
        """Replace the filter; applies from the next merge on."""
        pattern: re.Pattern | None = None
        invalid = False
        if request_filter.url_pattern:
            try:
                pattern = re.compile(request_filter.url_pattern)
            except re.error as e:
                logger.warning(
                    "Invalid URL pattern %r, filtering out every request: %s",
                    request_filter.url_pattern,
                    e,
                )
                invalid = True

        self._filter, self._pattern, self._pattern_invalid = (
            request_filter,
            pattern,
            invalid,
        )

    def should_emit(self, request: NetworkRequest) -> bool:
        """Evaluate the filter.

        A URL pattern, when set, decides alone and the type list is ignored.
        """
        if self._filter.is_empty:
            return True

        if self._filter.url_pattern:
            if self._pattern_invalid or self._pattern is None:
                return False
            return self._pattern.search(request.url) is not None

        return request.type in self._filter.types

    # Merge operations

    async def handle(self, event: NetworkEvent) -> None:
        """Dispatch a parsed event to its merge operation."""
        if not event.request_id:
            logger.debug("Dropping %s without request id", type(event).__name__)
            return

        if isinstance(event, RequestStarted):
            await self.on_request_started(
                event.request_id,
                event.method,
                event.url,
                event.headers,
                event.type,
                body=event.body,
            )
        elif isinstance(event, ResponseReceived):
            await self.on_response_received(event.request_id, event.status, event.headers)
        elif isinstance(event, LoadFinished):
            await self.on_load_finished(event.request_id, event.encoded_data_length)
        elif isinstance(event, LoadFailed):
            await self.on_load_failed(event.request_id, event.error_text)

    async def on_request_started(
        self,
        request_id: str,
        method: str,
        url: str,
        headers: dict[str, str],
        type: str,
        body: str | None = None,
    ) -> None:
        """Insert a new record; a repeated start (redirect) overwrites it."""
        async with self._lock_for(request_id):
            request = NetworkRequest(
                id=request_id,
                timestamp=datetime.now(timezone.utc),
                method=method,
                url=url,
                headers=dict(headers or {}),
                type=type or "",
                body=body,
            )
            self._requests[request_id] = request
            self._record(request)

    async def on_response_received(
        self, request_id: str, status: int, response_headers: dict[str, str]
    ) -> None:
        if request_id not in self._requests:
            return
        async with self._lock_for(request_id):
            request = self._requests.get(request_id)
            if request is None:
                return
            request.status = status
            request.response_headers = dict(response_headers or {})
            await self._emit(request)

    async def on_load_finished(self, request_id: str, encoded_data_length: int) -> None:
        if request_id not in self._requests:
            return
        async with self._lock_for(request_id):
            request = self._requests.get(request_id)
            if request is None:
                return
            request.response_size = encoded_data_length
            request.encoded_data_length = encoded_data_length
            await self._emit(request)

    async def on_load_failed(self, request_id: str, error_text: str | None) -> None:
        if request_id not in self._requests:
            return
        async with self._lock_for(request_id):
            request = self._requests.get(request_id)
            if request is None:
                return
            request.error = error_text or UNKNOWN_ERROR
            await self._emit(request)

    # Read path / lifecycle

    def get(self, request_id: str) -> NetworkRequest | None:
        return self._requests.get(request_id)

    def snapshot_all(self) -> list[NetworkRequest]:
        """All tracked requests, regardless of filter."""
        return list(self._requests.values())

    def clear(self) -> None:
        """Drop every tracked request; later events for them are ignored."""
        self._requests.clear()
        # Held locks survive so a new merge for that id still waits for the old one
        self._locks = {rid: lock for rid, lock in self._locks.items() if lock.locked()}

    def __len__(self) -> int:
        return len(self._requests)

    # Internals

    def _lock_for(self, request_id: str) -> asyncio.Lock:
        lock = self._locks.get(request_id)
        if lock is None:
            lock = self._locks[request_id] = asyncio.Lock()
        return lock

    def _record(self, request: NetworkRequest) -> None:
        if self._recorder is None:
            return
        try:
            self._recorder(request)
        except Exception as e:
            logger.error("Recorder failed: %s", e, extra=request_context(request.id))

    async def _emit(self, request: NetworkRequest) -> None:
        self._record(request)
        if self.should_emit(request):
            await self._fanout.publish(request)
