"""Scripted event source for demos and tests."""

from .sim import DEFAULT_SCENARIO, Sim

__all__ = ["DEFAULT_SCENARIO", "Sim"]
