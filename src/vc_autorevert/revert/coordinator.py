"""Batch, time-boxed reverting of buffers around repository operations."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from vc_autorevert.buffer import BufferRegistry, BufferRevertError, FileBuffer
from vc_autorevert.config import AutoRevertConfig, BudgetPolicy, RevertBudget
from vc_autorevert.runtime import telemetry
from vc_autorevert.vc import StatusSnapshot, VcBackend, capture, pending_paths

from .monitor import WatchRegistry, annotate
from .queue import DeferredRevertQueue, unique_buffers

Clock = Callable[[], float]
InputProbe = Callable[[], bool]


def _no_input() -> bool:
    return False


@dataclass(slots=True)
class RevertPassResult:
    """Outcome of one revert pass."""

    reverted: List[FileBuffer] = field(default_factory=list)
    deferred: List[FileBuffer] = field(default_factory=list)
    failed: List[FileBuffer] = field(default_factory=list)
    skipped: List[FileBuffer] = field(default_factory=list)
    budget_expired: bool = False

    @property
    def processed(self) -> int:
        return len(self.reverted) + len(self.failed) + len(self.skipped)


@dataclass(slots=True)
class _Operation:
    root: Path
    config: AutoRevertConfig
    pre: Optional[StatusSnapshot] = None


class RevertCoordinator:
    """Decides monitoring per buffer and reverts buffers after Git operations."""

    def __init__(
        self,
        buffers: BufferRegistry,
        backend: VcBackend,
        *,
        config: Optional[AutoRevertConfig] = None,
        watches: Optional[WatchRegistry] = None,
        deferred: Optional[DeferredRevertQueue] = None,
        clock: Clock = time.monotonic,
        input_pending: InputProbe = _no_input,
        logger_name: str | None = None,
    ) -> None:
        self.buffers = buffers
        self.backend = backend
        self.config = config or AutoRevertConfig()
        self.watches = watches or WatchRegistry(backend)
        self.deferred = deferred or DeferredRevertQueue()
        self._clock = clock
        self._input_pending = input_pending
        self._logger_name = logger_name or "vc_autorevert.revert"
        self.logger = telemetry.get_logger(self._logger_name)
        self._operation: Optional[_Operation] = None
        self._active_snapshot: Optional[StatusSnapshot] = None

    @property
    def active_snapshot(self) -> Optional[StatusSnapshot]:
        """Snapshot consulted by status refreshes during a revert pass."""

        return self._active_snapshot

    @property
    def pre_snapshot(self) -> Optional[StatusSnapshot]:
        return self._operation.pre if self._operation else None

    def reconfigure(self, config: AutoRevertConfig) -> None:
        """Adopt ``config``; per-file monitoring follows local and generic modes."""

        was_local = self.config.local_mode and not self.config.generic_revert
        local = config.local_mode and not config.generic_revert
        self.config = config
        if was_local and not local:
            self.watches.disable()
        elif local and not was_local:
            self.watches.enable(self.buffers.iter_buffers(), config)

    def buffer_created(self, buffer: FileBuffer) -> None:
        self.watches.watch(buffer, self.config)

    def buffer_killed(self, buffer: FileBuffer) -> None:
        self.watches.forget(buffer)
        self.deferred.discard(buffer)

    def reevaluate(self, buffer: FileBuffer) -> None:
        self.watches.reevaluate(buffer, self.config)

    def explicit_revert_enabled(
        self, config: Optional[AutoRevertConfig] = None
    ) -> bool:
        config = config or self.config
        if not config.immediate:
            return False
        return config.generic_revert or (
            config.local_mode and self.watches.any_watched()
        )

    def before_operation(self, root: Path) -> None:
        """Capture the "pre" snapshot ahead of a repository-mutating command."""

        config = self.config
        operation = _Operation(root=root, config=config)
        if self.explicit_revert_enabled(config):
            operation.pre = capture(self.backend, root, tracked_only=config.tracked_only)
        self._operation = operation

    def after_operation(self, root: Optional[Path] = None) -> RevertPassResult:
        """Capture the "post" snapshot and revert every affected buffer.

        Buffers the budget did not reach are appended to the deferred queue.
        Snapshots are cleared on every exit path.
        """

        operation = self._operation
        if operation is None:
            if root is None:
                raise ValueError("after_operation needs a root without before_operation")
            operation = _Operation(root=root, config=self.config)
        config = operation.config
        result = RevertPassResult()
        try:
            if not self.explicit_revert_enabled(config):
                return result
            post = capture(
                self.backend, root or operation.root, tracked_only=config.tracked_only
            )
            self._active_snapshot = post
            batch = unique_buffers(
                buffer
                for buffer in map(
                    self.buffers.find_buffer_for_file,
                    pending_paths(operation.pre, post),
                )
                if buffer is not None
            )
            remaining = self.deferred.without(batch)
            with telemetry.span(
                "revert::after_operation",
                logger_name=self._logger_name,
                component="revert",
                metadata={"root": operation.root, "pending": len(batch)},
            ):
                result = self.run_pass(batch, config.budget, snapshot=post)
            self.deferred.replace(remaining + result.deferred)
            return result
        finally:
            self._operation = None
            self._active_snapshot = None

    @contextmanager
    def operation(self, root: Path) -> Iterator[None]:
        """Bracket a mutating command with ``before``/``after_operation``."""

        self.before_operation(root)
        try:
            yield
        finally:
            self.after_operation(root)

    def run_pass(
        self,
        buffers: Sequence[FileBuffer],
        budget: Optional[RevertBudget] = None,
        *,
        snapshot: Optional[StatusSnapshot] = None,
    ) -> RevertPassResult:
        """Revert ``buffers`` in order until done or out of budget."""

        budget = budget or self.config.budget
        result = RevertPassResult()
        started = self._clock()
        for position, buffer in enumerate(buffers):
            if self._budget_expired(budget, started):
                result.budget_expired = True
                result.deferred = list(buffers[position:])
                break
            self._revert_one(buffer, result, snapshot)
        telemetry.record_event(
            "revert.pass",
            data={
                "reverted": len(result.reverted),
                "deferred": len(result.deferred),
                "failed": len(result.failed),
                "skipped": len(result.skipped),
            },
            logger_name=self._logger_name,
        )
        return result

    def drain_deferred(self) -> RevertPassResult:
        """Run one budgeted pass over the deferred queue."""

        pending = self.deferred.take_all()
        if not pending:
            return RevertPassResult()
        result = self.run_pass(pending)
        self.deferred.replace(list(self.deferred) + result.deferred)
        return result

    def _budget_expired(self, budget: RevertBudget, started: float) -> bool:
        if budget.policy is BudgetPolicy.STOP_ON_INPUT:
            return self._input_pending()
        return self._clock() - started >= budget.timeout

    def _revert_one(
        self,
        buffer: FileBuffer,
        result: RevertPassResult,
        snapshot: Optional[StatusSnapshot],
    ) -> None:
        if buffer.modified:
            telemetry.emit(
                self.logger,
                "info",
                "revert::skip_modified",
                {"buffer": buffer.name},
            )
            result.skipped.append(buffer)
            return
        try:
            self.buffers.revert_buffer(buffer)
        except BufferRevertError as exc:
            telemetry.emit(
                self.logger,
                "warning",
                "revert::failed",
                {"buffer": buffer.name, "error": exc},
            )
            result.failed.append(buffer)
            return
        annotate(self.backend, buffer, snapshot)
        result.reverted.append(buffer)


def revert_all(
    coordinator: RevertCoordinator, buffers: Iterable[FileBuffer]
) -> RevertPassResult:
    """Revert ``buffers`` without any budget."""

    return coordinator.run_pass(list(buffers), RevertBudget.seconds(float("inf")))


__all__ = ["RevertCoordinator", "RevertPassResult", "revert_all"]
