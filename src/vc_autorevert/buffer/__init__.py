"""File-visiting buffers and the registry protocol the coordinator uses."""

from .buffer import BufferView, FileBuffer, MonitorState
from .registry import InMemoryBufferRegistry
from .sync import BufferRegistry, BufferRevertError

__all__ = [
    "BufferRegistry",
    "BufferRevertError",
    "BufferView",
    "FileBuffer",
    "InMemoryBufferRegistry",
    "MonitorState",
]
