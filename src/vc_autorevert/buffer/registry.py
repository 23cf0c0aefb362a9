"""In-memory buffer registry keyed by resolved file path."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from vc_autorevert.runtime.telemetry import span

from .buffer import FileBuffer

BufferListener = Callable[[FileBuffer], None]


class InMemoryBufferRegistry:
    """Owns the open buffers and notifies listeners when one is created."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._buffers: Dict[Path, FileBuffer] = {}
        self._on_created: List[BufferListener] = []
        self._on_killed: List[BufferListener] = []
        self._logger_name = logger_name

    def subscribe(
        self,
        *,
        created: Optional[BufferListener] = None,
        killed: Optional[BufferListener] = None,
    ) -> None:
        if created is not None:
            self._on_created.append(created)
        if killed is not None:
            self._on_killed.append(killed)

    def open_file(self, path: Path | str) -> FileBuffer:
        """Visit ``path``, reusing the existing buffer when already open."""

        resolved = Path(path).resolve()
        existing = self._buffers.get(resolved)
        if existing is not None:
            return existing
        with span(
            "buffers::open",
            logger_name=self._logger_name,
            component="buffers",
            metadata={"path": resolved},
        ):
            buffer = FileBuffer.visit(resolved)
            self._buffers[resolved] = buffer
            for listener in self._on_created:
                listener(buffer)
            return buffer

    def kill(self, buffer: FileBuffer) -> bool:
        removed = self._buffers.pop(buffer.path, None)
        if removed is None:
            return False
        for listener in self._on_killed:
            listener(removed)
        return True

    def find_buffer_for_file(self, path: Path) -> Optional[FileBuffer]:
        return self._buffers.get(Path(path).resolve())

    def revert_buffer(self, buffer: FileBuffer) -> None:
        buffer.revert()

    def iter_buffers(self) -> Iterator[FileBuffer]:
        yield from list(self._buffers.values())

    def __len__(self) -> int:
        return len(self._buffers)


__all__ = ["InMemoryBufferRegistry"]
