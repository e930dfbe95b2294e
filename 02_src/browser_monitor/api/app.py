"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..monitor import Monitor
from .routes import monitoring, requests


# Global monitor instance
_monitor: Monitor | None = None


def get_monitor() -> Monitor:
    """Get the global monitor instance."""
    global _monitor
    if not _monitor:
        _monitor = Monitor()
    return _monitor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage monitor lifespan."""
    monitor = get_monitor()
    await monitor.start()
    yield
    await monitor.stop()


def create_fastapi_app(monitor: Monitor | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    global _monitor
    if monitor is not None:
        _monitor = monitor

    fastapi_app = FastAPI(
        title="Browser Monitor API",
        description="Network request monitoring over the Chrome DevTools Protocol",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    current = get_monitor()
    fastapi_app.include_router(monitoring.create_monitoring_router(current))
    fastapi_app.include_router(requests.create_requests_router(current))

    return fastapi_app
