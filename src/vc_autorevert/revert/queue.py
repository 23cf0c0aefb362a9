"""Deferred-revert queue owned by the coordinator."""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

from vc_autorevert.buffer import FileBuffer


def unique_buffers(buffers: Iterable[FileBuffer]) -> list[FileBuffer]:
    """Drop repeated buffers (by identity), keeping first-seen order."""

    seen: set[int] = set()
    result: list[FileBuffer] = []
    for buffer in buffers:
        if id(buffer) in seen:
            continue
        seen.add(id(buffer))
        result.append(buffer)
    return result


class DeferredRevertQueue:
    """Buffers a budgeted pass did not reach, in FIFO order.

    The contents are only ever replaced wholesale so an interrupted pass can
    never leave a half-updated list behind.
    """

    def __init__(self, buffers: Iterable[FileBuffer] = ()) -> None:
        self._items: Tuple[FileBuffer, ...] = tuple(unique_buffers(buffers))

    def snapshot(self) -> Tuple[FileBuffer, ...]:
        return self._items

    def without(self, buffers: Iterable[FileBuffer]) -> list[FileBuffer]:
        """Current contents minus ``buffers``; the queue is not modified."""

        excluded = {id(buffer) for buffer in buffers}
        return [buffer for buffer in self._items if id(buffer) not in excluded]

    def replace(self, buffers: Iterable[FileBuffer]) -> None:
        self._items = tuple(unique_buffers(buffers))

    def take_all(self) -> list[FileBuffer]:
        items = list(self._items)
        self._items = ()
        return items

    def discard(self, buffer: FileBuffer) -> None:
        self.replace(self.without((buffer,)))

    def __contains__(self, buffer: object) -> bool:
        return any(item is buffer for item in self._items)

    def __iter__(self) -> Iterator[FileBuffer]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


__all__ = ["DeferredRevertQueue", "unique_buffers"]
