"""Version-control backend, status tags and snapshot cache."""

from .git import GitBackend, StatusEntry, VcBackend, parse_porcelain_z, run_git
from .modeline import mode_line_string
from .runner import CommandOutcome, GitCommandError, GitRunner, is_mutating
from .snapshot import StatusSnapshot, capture, lookup_or_refresh, pending_paths
from .status import StatusTag, VcQueryError, tag_for_code

__all__ = [
    "CommandOutcome",
    "GitCommandError",
    "GitRunner",
    "GitBackend",
    "StatusEntry",
    "StatusSnapshot",
    "StatusTag",
    "VcBackend",
    "VcQueryError",
    "capture",
    "is_mutating",
    "lookup_or_refresh",
    "mode_line_string",
    "parse_porcelain_z",
    "pending_paths",
    "run_git",
    "tag_for_code",
]
