"""Tracker module."""

from .tracker import IRequestTracker, Recorder, RequestTracker, UNKNOWN_ERROR

__all__ = ["IRequestTracker", "Recorder", "RequestTracker", "UNKNOWN_ERROR"]
