"""Storage module."""

from .storage import IRequestStore, RequestStore

__all__ = ["IRequestStore", "RequestStore"]
