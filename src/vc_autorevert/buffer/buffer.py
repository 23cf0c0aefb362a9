"""File-visiting buffers that can be reverted from disk."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from vc_autorevert.runtime import telemetry
from vc_autorevert.vc.status import StatusTag

from .sync import BufferRevertError


class MonitorState(str, Enum):
    UNMONITORED = "unmonitored"
    MONITORED = "monitored"


@dataclass(slots=True)
class BufferView:
    name: str
    path: Path
    modified: bool
    monitor: MonitorState
    vc_state: Optional[StatusTag]
    vc_mode: Optional[str]
    revision: int


class FileBuffer:
    """In-memory copy of a file plus its monitoring and VC annotations."""

    def __init__(self, path: Path, *, text: str = "", encoding: str = "utf-8") -> None:
        self.path = Path(path).resolve()
        self.text = text
        self.encoding = encoding
        self.modified = False
        self.revision = 0
        self.monitor = MonitorState.UNMONITORED
        self.vc_state: Optional[StatusTag] = None
        self.vc_mode: Optional[str] = None
        self.repo_root: Optional[Path] = None

    @classmethod
    def visit(cls, path: Path, *, encoding: str = "utf-8") -> "FileBuffer":
        buffer = cls(path, encoding=encoding)
        if buffer.path.exists():
            buffer.revert()
        return buffer

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def monitored(self) -> bool:
        return self.monitor is MonitorState.MONITORED

    def edit(self, text: str) -> None:
        self.text = text
        self.modified = True

    def revert(self) -> None:
        """Replace the buffer contents with the file on disk."""

        with telemetry.span(
            "buffer::revert",
            logger_name="vc_autorevert.buffer",
            metadata={"buffer": self.name},
        ):
            try:
                text = self.path.read_text(encoding=self.encoding)
            except (OSError, UnicodeDecodeError) as exc:
                raise BufferRevertError(
                    f"Cannot revert {self.path}: {exc}", path=self.path
                ) from exc
            self.text = text
            self.modified = False
            self.revision += 1

    def snapshot(self) -> BufferView:
        return BufferView(
            name=self.name,
            path=self.path,
            modified=self.modified,
            monitor=self.monitor,
            vc_state=self.vc_state,
            vc_mode=self.vc_mode,
            revision=self.revision,
        )

    def __repr__(self) -> str:
        return f"FileBuffer({str(self.path)!r}, monitor={self.monitor.value})"
