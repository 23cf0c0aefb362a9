"""Version-control status tags and Git porcelain code classification."""

from __future__ import annotations

from enum import Enum

_CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class StatusTag(str, Enum):
    """State of a file relative to the last commit."""

    UP_TO_DATE = "up-to-date"
    MODIFIED = "modified"
    ADDED = "added"
    REMOVED = "removed"
    MISSING = "missing"
    CONFLICTED = "conflicted"
    IGNORED = "ignored"
    UNREGISTERED = "unregistered"

    @property
    def registered(self) -> bool:
        return self not in (StatusTag.IGNORED, StatusTag.UNREGISTERED)


class VcQueryError(RuntimeError):
    """A status, discovery or tracking query against the repository failed."""

    def __init__(self, message: str, *, command: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.command = command


def tag_for_code(code: str) -> StatusTag:
    """Classify a two-character ``git status --porcelain`` code.

    Index column first, worktree column second; a blank code means the file
    is unchanged.
    """

    code = code.ljust(2)[:2]
    index, worktree = code[0], code[1]
    if code == "??":
        return StatusTag.UNREGISTERED
    if code == "!!":
        return StatusTag.IGNORED
    if code in _CONFLICT_CODES:
        return StatusTag.CONFLICTED
    if index == "A":
        return StatusTag.ADDED
    if index == "D":
        return StatusTag.REMOVED
    if worktree == "D":
        return StatusTag.MISSING
    if code.strip():
        return StatusTag.MODIFIED
    return StatusTag.UP_TO_DATE


__all__ = ["StatusTag", "VcQueryError", "tag_for_code"]
