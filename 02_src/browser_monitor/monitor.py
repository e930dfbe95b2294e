"""Monitor bootstrap, tracking sessions and the control-surface read path."""

import asyncio
import copy
import os
from typing import Protocol

from .config import (
    DEFAULT_CDP_HOST,
    DEFAULT_CDP_PORT,
    persistence_enabled,
    resolve_db_path,
)
from .fanout import LiveFeed, RequestFanOut, RequestHandler
from .logging_config import get_logger, request_context
from .models import NetworkRequest, RequestFilter, RequestQuery, RequestStats
from .sources import CDPEventSource, EventSourceFactory, IEventSource
from .storage import IRequestStore, RequestStore
from .tracker import RequestTracker

logger = get_logger(__name__)


class IMonitor(Protocol):
    """Start/stop tracking and read live and stored requests."""

    async def start(self) -> None:
        """Open the request store."""
        ...

    async def stop(self) -> None:
        """Stop tracking, flush pending saves, close the store."""
        ...

    async def start_tracking(
        self,
        host: str | None = None,
        port: int | None = None,
        request_filter: RequestFilter | None = None,
    ) -> None:
        """Attach to a browser and start merging its network events."""
        ...

    async def stop_tracking(self) -> None:
        """Detach and drop every in-flight request."""
        ...

    def list_active(self) -> list[NetworkRequest]:
        """Unfiltered snapshot of the live table."""
        ...

    def recent(self) -> list[NetworkRequest]:
        """Recently published (filter-passing) requests, oldest first."""
        ...

    async def query(self, query: RequestQuery) -> list[NetworkRequest]:
        """Query the request store."""
        ...

    async def stats(self) -> RequestStats:
        """Aggregate counts over the request store."""
        ...

    async def prune(self, older_than_days: float) -> int:
        """Delete stored requests older than the given age."""
        ...


class Monitor:
    """Wires event source, tracker, fan-out and store together."""

    def __init__(
        self,
        db_path: str | None = None,
        source_factory: EventSourceFactory | None = None,
        persist: bool | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._source_factory: EventSourceFactory = source_factory or CDPEventSource
        self._persist = persistence_enabled() if persist is None else persist

        self._store: IRequestStore | None = None
        self._source: IEventSource | None = None
        self._pending_saves: set[asyncio.Task] = set()

        self._fanout = RequestFanOut()
        self._feed = LiveFeed()
        self._fanout.subscribe(self._feed.handle)
        self._tracker = RequestTracker(
            self._fanout,
            recorder=self._schedule_save if self._persist else None,
        )

    async def start(self) -> None:
        """Open the request store."""
        if self._store:
            return
        logger.info("Starting monitor")
        self._store = RequestStore(self._db_path)
        await self._store.init()
        logger.info("Request store initialized")

    async def stop(self) -> None:
        """Stop tracking, flush pending saves, close the store."""
        await self.stop_tracking()
        await self.flush()
        if self._store:
            await self._store.close()
            self._store = None
            logger.info("Request store closed")

    # Tracking sessions

    @property
    def is_tracking(self) -> bool:
        return self._source is not None

    async def start_tracking(
        self,
        host: str | None = None,
        port: int | None = None,
        request_filter: RequestFilter | None = None,
    ) -> None:
        """Attach to a browser and start merging its network events.

        Raises CDPConnectionError or NoTargetError; on failure the monitor
        is left not tracking.
        """
        host = host or os.getenv("CDP_HOST", DEFAULT_CDP_HOST)
        port = port or int(os.getenv("CDP_PORT", str(DEFAULT_CDP_PORT)))

        await self.stop_tracking()
        self._tracker.set_filter(request_filter or RequestFilter())

        source = self._source_factory(host, port, self._tracker.handle)
        try:
            await source.connect()
        except Exception:
            await source.close()
            self._tracker.clear()
            raise

        self._source = source
        logger.info(
            "Tracking started on %s:%s",
            host,
            port,
            extra=request_context(endpoint=f"{host}:{port}"),
        )

    async def stop_tracking(self) -> None:
        """Detach and drop every in-flight request. Safe when not tracking."""
        source, self._source = self._source, None
        if source:
            await source.close()
            logger.info("Tracking stopped")
        self._tracker.clear()
        self._feed.clear()

    def set_filter(self, request_filter: RequestFilter) -> None:
        self._tracker.set_filter(request_filter)

    def subscribe(self, handler: RequestHandler) -> None:
        """Register a live subscriber for filter-passing merged requests."""
        self._fanout.subscribe(handler)

    def unsubscribe(self, handler: RequestHandler) -> None:
        self._fanout.unsubscribe(handler)

    # Read path

    def list_active(self) -> list[NetworkRequest]:
        """Unfiltered snapshot of the live table."""
        return self._tracker.snapshot_all()

    def recent(self) -> list[NetworkRequest]:
        """Recently published (filter-passing) requests, oldest first."""
        return self._feed.recent()

    async def save(self, request: NetworkRequest) -> None:
        """Persist a request snapshot directly."""
        await self.store.save(request)

    async def query(self, query: RequestQuery) -> list[NetworkRequest]:
        """Query the request store."""
        return await self.store.query(query)

    async def stats(self) -> RequestStats:
        """Aggregate counts over the request store."""
        return await self.store.stats()

    async def prune(self, older_than_days: float) -> int:
        """Delete stored requests older than the given age."""
        return await self.store.prune(older_than_days)

    # Background persistence

    def _schedule_save(self, request: NetworkRequest) -> None:
        if not self._store:
            return
        task = asyncio.create_task(self._save_snapshot(copy.deepcopy(request)))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save_snapshot(self, request: NetworkRequest) -> None:
        store = self._store
        if not store:
            return
        try:
            await store.save(request)
        except Exception as e:
            logger.error(
                "Failed to persist request: %s", e, extra=request_context(request.id)
            )

    async def flush(self) -> None:
        """Wait for every scheduled save to finish."""
        while self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

    @property
    def store(self) -> IRequestStore:
        """Get the request store."""
        if not self._store:
            raise RuntimeError("Monitor not started")
        return self._store

    @property
    def tracker(self) -> RequestTracker:
        return self._tracker
