"""Monitoring decisions and budgeted batch reverts around Git operations."""

from .coordinator import RevertCoordinator, RevertPassResult, revert_all
from .monitor import WatchRegistry, annotate, should_monitor
from .queue import DeferredRevertQueue, unique_buffers

__all__ = [
    "DeferredRevertQueue",
    "RevertCoordinator",
    "RevertPassResult",
    "WatchRegistry",
    "annotate",
    "revert_all",
    "should_monitor",
    "unique_buffers",
]
