"""HTTP control API."""

from .app import create_fastapi_app, get_monitor

__all__ = ["create_fastapi_app", "get_monitor"]
