"""Input probes for the stop-on-input revert budget."""

from __future__ import annotations

import select
import sys
import threading
from typing import Callable, Optional, TextIO


def fd_input_pending(fd: int) -> bool:
    """True when ``fd`` has unread input right now."""

    try:
        ready, _, _ = select.select([fd], [], [], 0)
    except (OSError, ValueError):
        return False
    return bool(ready)


def terminal_input_probe(stream: Optional[TextIO] = None) -> Callable[[], bool]:
    """Probe for pending keystrokes on ``stream`` (stdin by default).

    Non-interactive streams never report input.
    """

    stream = stream or sys.stdin
    try:
        interactive = stream.isatty()
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError):
        interactive = False
        fd = -1
    if not interactive:
        return lambda: False
    return lambda: fd_input_pending(fd)


class PendingInput:
    """Count of input events a host has received but not yet handled.

    ``received`` is called from the thread that reads the terminal and
    ``handled`` from the event loop once the event is dispatched. Calling the
    instance reports whether anything is still waiting, so it can be passed
    as a coordinator's ``input_pending`` probe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0

    def received(self) -> None:
        with self._lock:
            self._count += 1

    def handled(self) -> None:
        with self._lock:
            if self._count:
                self._count -= 1

    @property
    def count(self) -> int:
        return self._count

    def __call__(self) -> bool:
        return self._count > 0


__all__ = ["PendingInput", "fd_input_pending", "terminal_input_probe"]
