"""Boundary types between the revert coordinator and a buffer host."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional, Protocol

if TYPE_CHECKING:
    from .buffer import FileBuffer


class BufferRegistry(Protocol):
    """Protocol describing how the coordinator reaches the host's buffers."""

    def find_buffer_for_file(self, path: Path) -> Optional["FileBuffer"]:
        """Return the open buffer visiting ``path``, if any."""
        ...

    def revert_buffer(self, buffer: "FileBuffer") -> None:
        """Reload ``buffer`` from disk; raise ``BufferRevertError`` on failure."""
        ...

    def iter_buffers(self) -> Iterator["FileBuffer"]:
        ...


class BufferRevertError(RuntimeError):
    """Raised when a buffer cannot be reloaded from its file."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path
