"""Point-in-time status snapshots and snapshot-first status refresh."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from vc_autorevert.runtime import telemetry

from .git import VcBackend
from .status import StatusTag, VcQueryError, tag_for_code

_LOGGER = "vc_autorevert.snapshot"


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    """Ordered ``path -> StatusTag`` mapping captured by one batch query."""

    root: Path
    tracked_only: bool
    entries: Mapping[Path, StatusTag] = field(default_factory=dict)
    branch: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    @classmethod
    def empty(cls, root: Path, *, tracked_only: bool) -> "StatusSnapshot":
        return cls(root=root, tracked_only=tracked_only)

    def paths(self) -> tuple[Path, ...]:
        return tuple(self.entries)

    def get(self, path: Path) -> Optional[StatusTag]:
        return self.entries.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def __iter__(self) -> Iterator[Path]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def capture(backend: VcBackend, root: Path, *, tracked_only: bool) -> StatusSnapshot:
    """Take one batch status snapshot of ``root``.

    A failing query yields an empty snapshot; the failure is logged.
    """

    with telemetry.span(
        "snapshot::capture",
        logger_name=_LOGGER,
        component="snapshot",
        metadata={"root": root, "tracked_only": tracked_only},
    ) as handle:
        try:
            entries = backend.list_status(root, tracked_only)
            branch = backend.current_branch(root)
        except VcQueryError as exc:
            handle.add_metadata("error", exc)
            telemetry.record_event(
                "snapshot.query_failed",
                level="warning",
                data={"root": root, "error": exc},
                logger_name=_LOGGER,
            )
            return StatusSnapshot.empty(root, tracked_only=tracked_only)
        snapshot = StatusSnapshot(
            root=root,
            tracked_only=tracked_only,
            entries={path: tag_for_code(code) for path, code in entries},
            branch=branch,
        )
        handle.add_metadata("entries", len(snapshot))
        return snapshot


def pending_paths(*snapshots: Optional[StatusSnapshot]) -> list[Path]:
    """Concatenate snapshot paths, dropping repeats but keeping first-seen order."""

    return list(dict.fromkeys(_chain_paths(snapshots)))


def _chain_paths(snapshots: Iterable[Optional[StatusSnapshot]]) -> Iterator[Path]:
    for snapshot in snapshots:
        if snapshot is not None:
            yield from snapshot.paths()


def lookup_or_refresh(
    backend: VcBackend, path: Path, snapshot: Optional[StatusSnapshot]
) -> Optional[StatusTag]:
    """Status for ``path``, from ``snapshot`` when it covers the file.

    Falls back to a per-file query otherwise. Returns ``None`` when the state
    cannot be determined (outside a repository, or the query failed).
    """

    if snapshot is not None:
        cached = snapshot.get(path)
        if cached is not None:
            return cached
    try:
        code = backend.file_status(path)
    except VcQueryError as exc:
        telemetry.record_event(
            "snapshot.refresh_failed",
            level="warning",
            data={"path": path, "error": exc},
            logger_name=_LOGGER,
        )
        return None
    if code is None:
        return None
    return tag_for_code(code)


__all__ = [
    "StatusSnapshot",
    "capture",
    "lookup_or_refresh",
    "pending_paths",
]
