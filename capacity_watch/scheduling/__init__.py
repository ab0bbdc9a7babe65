"""Sweep scheduling and status tracking."""

from .scheduler import SweepScheduler
from .sweep import StatusStore, SweepCoordinator

__all__ = [
    "StatusStore",
    "SweepCoordinator",
    "SweepScheduler",
]
