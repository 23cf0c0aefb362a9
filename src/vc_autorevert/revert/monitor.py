"""Per-buffer monitoring decision and the set of watched buffers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from vc_autorevert.buffer import FileBuffer, MonitorState
from vc_autorevert.config import AutoRevertConfig
from vc_autorevert.runtime import telemetry
from vc_autorevert.vc import (
    StatusSnapshot,
    StatusTag,
    VcBackend,
    VcQueryError,
    lookup_or_refresh,
    mode_line_string,
)

_LOGGER = "vc_autorevert.monitor"


def should_monitor(
    path: Path,
    repo_root: Optional[Path],
    is_tracked: bool,
    config: AutoRevertConfig,
) -> bool:
    """Decide whether ``path`` gets per-file revert monitoring."""

    if config.generic_revert:
        return False
    if repo_root is None:
        return False
    if not (path.is_file() and os.access(path, os.R_OK)):
        return False
    return not config.tracked_only or is_tracked


def annotate(
    backend: VcBackend,
    buffer: FileBuffer,
    snapshot: Optional[StatusSnapshot] = None,
) -> Optional[StatusTag]:
    """Refresh ``buffer.vc_state`` and ``buffer.vc_mode``."""

    tag = lookup_or_refresh(backend, buffer.path, snapshot)
    buffer.vc_state = tag
    if tag is None:
        buffer.vc_mode = None
        return None
    branch: Optional[str] = None
    if snapshot is not None and snapshot.root == buffer.repo_root:
        branch = snapshot.branch
    elif buffer.repo_root is not None:
        try:
            branch = backend.current_branch(buffer.repo_root)
        except VcQueryError:
            branch = None
    buffer.vc_mode = mode_line_string(backend.name, tag, branch)
    return tag


class WatchRegistry:
    """Tracks which buffers are monitored.

    A buffer moves from ``UNMONITORED`` to ``MONITORED`` when it is created (or
    re-evaluated) and the decision holds; it only goes back when monitoring
    is disabled globally.
    """

    def __init__(self, backend: VcBackend) -> None:
        self.backend = backend
        self._watched: Dict[int, FileBuffer] = {}

    def watch(self, buffer: FileBuffer, config: AutoRevertConfig) -> MonitorState:
        """Run the creation-time decision for ``buffer``."""

        if buffer.monitored:
            return buffer.monitor
        with telemetry.span(
            "monitor::decide",
            logger_name=_LOGGER,
            component="monitor",
            metadata={"buffer": buffer.name},
        ) as handle:
            root = self._toplevel(buffer.path)
            buffer.repo_root = root
            if root is not None:
                annotate(self.backend, buffer)
            if not config.local_mode:
                handle.add_metadata("decision", "disabled")
                return buffer.monitor
            tracked = False
            if root is not None and config.tracked_only:
                tracked = self._is_tracked(buffer)
            if should_monitor(buffer.path, root, tracked, config):
                buffer.monitor = MonitorState.MONITORED
                self._watched[id(buffer)] = buffer
                telemetry.record_event(
                    "monitor.enabled",
                    data={"path": buffer.path, "root": root},
                    logger_name=_LOGGER,
                )
            handle.add_metadata("decision", buffer.monitor.value)
            return buffer.monitor

    def reevaluate(self, buffer: FileBuffer, config: AutoRevertConfig) -> MonitorState:
        """Re-run the decision, e.g. after the file was staged."""

        return self.watch(buffer, config)

    def forget(self, buffer: FileBuffer) -> None:
        self._watched.pop(id(buffer), None)

    def disable(self) -> List[FileBuffer]:
        """Stop monitoring every buffer; returns the ones that were watched."""

        released = list(self._watched.values())
        for buffer in released:
            buffer.monitor = MonitorState.UNMONITORED
        self._watched.clear()
        if released:
            telemetry.record_event(
                "monitor.disabled",
                data={"released": len(released)},
                logger_name=_LOGGER,
            )
        return released

    def enable(
        self, buffers: Iterable[FileBuffer], config: AutoRevertConfig
    ) -> List[FileBuffer]:
        return [
            buffer
            for buffer in buffers
            if self.watch(buffer, config) is MonitorState.MONITORED
        ]

    def watched(self) -> List[FileBuffer]:
        return list(self._watched.values())

    def any_watched(self) -> bool:
        return bool(self._watched)

    def is_watched(self, buffer: FileBuffer) -> bool:
        return id(buffer) in self._watched

    def _toplevel(self, path: Path) -> Optional[Path]:
        try:
            return self.backend.toplevel_of(path)
        except VcQueryError as exc:
            telemetry.record_event(
                "monitor.discovery_failed",
                level="warning",
                data={"path": path, "error": exc},
                logger_name=_LOGGER,
            )
            return None

    def _is_tracked(self, buffer: FileBuffer) -> bool:
        if buffer.vc_state is not None:
            return buffer.vc_state.registered
        try:
            return self.backend.is_tracked(buffer.path)
        except VcQueryError as exc:
            telemetry.record_event(
                "monitor.tracking_failed",
                level="warning",
                data={"path": buffer.path, "error": exc},
                logger_name=_LOGGER,
            )
            return False


__all__ = ["WatchRegistry", "annotate", "should_monitor"]
