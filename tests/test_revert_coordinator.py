from __future__ import annotations

import itertools
import os
from pathlib import Path
from typing import Iterable, Optional

import pytest

from vc_autorevert.buffer import FileBuffer, InMemoryBufferRegistry, MonitorState
from vc_autorevert.config import AutoRevertConfig, RevertBudget
from vc_autorevert.revert import DeferredRevertQueue, RevertCoordinator, should_monitor
from vc_autorevert.vc import StatusTag


def fixed_clock() -> float:
    return 0.0


def make_coordinator(
    backend,
    *,
    config: Optional[AutoRevertConfig] = None,
    clock=fixed_clock,
    input_pending=lambda: False,
) -> tuple[RevertCoordinator, InMemoryBufferRegistry]:
    registry = InMemoryBufferRegistry()
    coordinator = RevertCoordinator(
        registry,
        backend,
        config=config or AutoRevertConfig(),
        clock=clock,
        input_pending=input_pending,
    )
    registry.subscribe(
        created=coordinator.buffer_created, killed=coordinator.buffer_killed
    )
    return coordinator, registry


def write_files(root: Path, names: Iterable[str]) -> list[Path]:
    paths = []
    for name in names:
        path = root / name
        path.write_text(f"{name} v1\n")
        paths.append(path)
    return paths


def tracked(backend, *paths: Path) -> None:
    backend.tracked.update(paths)


def test_before_after_reverts_pending_in_first_seen_order(repo, backend) -> None:
    a, b = write_files(repo, ["a.txt", "b.txt"])
    tracked(backend, a, b)
    backend.statuses = {a: " M", b: "A "}
    coordinator, registry = make_coordinator(backend)
    buf_a = registry.open_file(a)
    buf_b = registry.open_file(b)

    coordinator.before_operation(repo)
    a.write_text("a.txt v2\n")
    b.write_text("b.txt v2\n")
    backend.statuses = {a: " M", b: "AM"}
    result = coordinator.after_operation(repo)

    assert result.reverted == [buf_a, buf_b]
    assert not result.deferred
    assert buf_a.text == "a.txt v2\n"
    assert buf_b.text == "b.txt v2\n"
    assert buf_b.vc_state is StatusTag.ADDED
    assert buf_a.vc_mode == "Git:main"


def test_untracked_file_not_monitored_when_tracked_only(repo, backend) -> None:
    (c,) = write_files(repo, ["c.txt"])
    backend.statuses = {c: "??"}
    coordinator, registry = make_coordinator(backend)

    buffer = registry.open_file(c)

    assert buffer.monitor is MonitorState.UNMONITORED
    assert buffer.vc_state is StatusTag.UNREGISTERED
    assert not coordinator.watches.any_watched()


def test_untracked_file_monitored_when_not_tracked_only(repo, backend) -> None:
    (c,) = write_files(repo, ["c.txt"])
    backend.statuses = {c: "??"}
    _, registry = make_coordinator(
        backend, config=AutoRevertConfig(tracked_only=False)
    )

    assert registry.open_file(c).monitored


def test_generic_revert_mode_prevents_monitoring(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(generic_revert=True)
    )

    buffer = registry.open_file(a)

    assert not buffer.monitored
    assert coordinator.explicit_revert_enabled()


def test_zero_budget_defers_everything_in_order(repo, backend) -> None:
    a, b = write_files(repo, ["a.txt", "b.txt"])
    tracked(backend, a, b)
    backend.statuses = {a: " M", b: " M"}
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(budget=RevertBudget.seconds(0))
    )
    buf_a = registry.open_file(a)
    buf_b = registry.open_file(b)

    coordinator.before_operation(repo)
    result = coordinator.after_operation(repo)

    assert result.reverted == []
    assert result.budget_expired
    assert list(coordinator.deferred) == [buf_a, buf_b]


def test_budget_expiry_reverts_prefix_and_defers_rest(repo, backend) -> None:
    paths = write_files(repo, ["a.txt", "b.txt", "c.txt"])
    tracked(backend, *paths)
    backend.statuses = {path: " M" for path in paths}
    ticks = itertools.chain([0.0, 0.0, 0.1, 0.3], itertools.repeat(1.0))
    coordinator, registry = make_coordinator(
        backend,
        config=AutoRevertConfig(budget=RevertBudget.seconds(0.25)),
        clock=lambda: next(ticks),
    )
    buffers = [registry.open_file(path) for path in paths]

    coordinator.before_operation(repo)
    result = coordinator.after_operation(repo)

    assert result.reverted == buffers[:2]
    assert result.deferred == buffers[2:]
    assert list(coordinator.deferred) == buffers[2:]


def test_after_operation_twice_does_not_duplicate_deferred(repo, backend) -> None:
    a, b = write_files(repo, ["a.txt", "b.txt"])
    tracked(backend, a, b)
    backend.statuses = {a: " M", b: " M"}
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(budget=RevertBudget.seconds(0))
    )
    registry.open_file(a)
    registry.open_file(b)

    coordinator.before_operation(repo)
    coordinator.after_operation(repo)
    coordinator.after_operation(repo)

    assert len(coordinator.deferred) == 2


def test_batch_buffers_move_to_end_of_deferred_queue(repo, backend) -> None:
    a, b, c = write_files(repo, ["a.txt", "b.txt", "c.txt"])
    tracked(backend, a, b, c)
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(budget=RevertBudget.seconds(0))
    )
    buf_a, buf_b, buf_c = (registry.open_file(path) for path in (a, b, c))
    coordinator.deferred.replace([buf_c, buf_a])
    backend.statuses = {a: " M", b: " M"}

    coordinator.before_operation(repo)
    coordinator.after_operation(repo)

    assert list(coordinator.deferred) == [buf_c, buf_a, buf_b]


def test_failed_revert_does_not_abort_batch(repo, backend) -> None:
    a, b = write_files(repo, ["a.txt", "b.txt"])
    tracked(backend, a, b)
    coordinator, registry = make_coordinator(backend)
    buf_a = registry.open_file(a)
    buf_b = registry.open_file(b)

    coordinator.before_operation(repo)
    a.unlink()
    b.write_text("b.txt v2\n")
    backend.statuses = {a: " D", b: " M"}
    result = coordinator.after_operation(repo)

    assert result.failed == [buf_a]
    assert result.reverted == [buf_b]
    assert buf_a.text == "a.txt v1\n"
    assert coordinator.active_snapshot is None


def test_modified_buffers_are_skipped_not_deferred(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    backend.statuses = {a: " M"}
    coordinator, registry = make_coordinator(backend)
    buffer = registry.open_file(a)
    buffer.edit("unsaved")

    coordinator.before_operation(repo)
    result = coordinator.after_operation(repo)

    assert result.skipped == [buffer]
    assert buffer.text == "unsaved"
    assert not coordinator.deferred


def test_no_snapshot_without_watched_buffers(repo, backend) -> None:
    coordinator, _ = make_coordinator(backend)

    coordinator.before_operation(repo)
    result = coordinator.after_operation(repo)

    assert backend.status_calls == []
    assert result.processed == 0


def test_no_snapshot_when_immediate_disabled(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(immediate=False)
    )
    registry.open_file(a)

    coordinator.before_operation(repo)
    coordinator.after_operation(repo)

    assert backend.status_calls == []


def test_operation_context_clears_snapshots_on_error(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    backend.statuses = {a: " M"}
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(budget=RevertBudget.seconds(0))
    )
    buffer = registry.open_file(a)

    with pytest.raises(RuntimeError):
        with coordinator.operation(repo):
            assert coordinator.pre_snapshot is not None
            raise RuntimeError("git exploded")

    assert coordinator.pre_snapshot is None
    assert coordinator.active_snapshot is None
    assert list(coordinator.deferred) == [buffer]


def test_stop_on_input_budget(repo, backend) -> None:
    a, b = write_files(repo, ["a.txt", "b.txt"])
    tracked(backend, a, b)
    backend.statuses = {a: " M", b: " M"}
    answers = iter([False, True])
    coordinator, registry = make_coordinator(
        backend,
        config=AutoRevertConfig(budget=RevertBudget.stop_on_input()),
        clock=lambda: 100.0,
        input_pending=lambda: next(answers),
    )
    buf_a = registry.open_file(a)
    buf_b = registry.open_file(b)

    coordinator.before_operation(repo)
    result = coordinator.after_operation(repo)

    assert result.reverted == [buf_a]
    assert result.deferred == [buf_b]


def test_status_query_failure_yields_empty_pass(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    coordinator, registry = make_coordinator(backend)
    registry.open_file(a)
    backend.fail_queries = True

    coordinator.before_operation(repo)
    result = coordinator.after_operation(repo)

    assert result.processed == 0
    assert not coordinator.deferred


def test_drain_deferred_reverts_queue(repo, backend) -> None:
    a, b = write_files(repo, ["a.txt", "b.txt"])
    tracked(backend, a, b)
    coordinator, registry = make_coordinator(backend)
    buffers = [registry.open_file(a), registry.open_file(b)]
    coordinator.deferred.replace(buffers)
    a.write_text("fresh\n")

    result = coordinator.drain_deferred()

    assert result.reverted == buffers
    assert buffers[0].text == "fresh\n"
    assert not coordinator.deferred


def test_disable_and_enable_monitoring(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    coordinator, registry = make_coordinator(backend)
    buffer = registry.open_file(a)
    assert buffer.monitored

    coordinator.reconfigure(AutoRevertConfig(local_mode=False))
    assert buffer.monitor is MonitorState.UNMONITORED
    assert not coordinator.explicit_revert_enabled()

    coordinator.reconfigure(AutoRevertConfig(local_mode=True))
    assert buffer.monitored


def test_reevaluate_after_staging(repo, backend) -> None:
    (c,) = write_files(repo, ["c.txt"])
    backend.statuses = {c: "??"}
    coordinator, registry = make_coordinator(backend)
    buffer = registry.open_file(c)
    assert not buffer.monitored

    backend.statuses = {c: "A "}
    buffer.vc_state = None
    coordinator.reevaluate(buffer)

    assert buffer.monitored


def test_killed_buffer_leaves_deferred_queue(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    coordinator, registry = make_coordinator(backend)
    buffer = registry.open_file(a)
    coordinator.deferred.replace([buffer])

    registry.kill(buffer)

    assert buffer not in coordinator.deferred
    assert not coordinator.watches.is_watched(buffer)


def test_deferred_queue_dedups_by_identity(repo) -> None:
    first = FileBuffer(repo / "x.txt")
    second = FileBuffer(repo / "x.txt")

    queue = DeferredRevertQueue([first, first, second])

    assert queue.snapshot() == (first, second)


def test_generic_revert_toggle_follows_monitoring_decision(repo, backend) -> None:
    (a,) = write_files(repo, ["a.txt"])
    tracked(backend, a)
    coordinator, registry = make_coordinator(backend)
    buffer = registry.open_file(a)
    assert buffer.monitored

    coordinator.reconfigure(AutoRevertConfig(generic_revert=True))
    assert buffer.monitor is MonitorState.UNMONITORED
    assert not coordinator.watches.any_watched()
    assert coordinator.explicit_revert_enabled()

    coordinator.reconfigure(AutoRevertConfig())
    assert buffer.monitored


def test_should_monitor_requires_repository_and_readable_file(repo) -> None:
    (a,) = write_files(repo, ["a.txt"])
    config = AutoRevertConfig()

    assert should_monitor(a, repo, True, config)
    assert not should_monitor(a, None, True, config)
    assert not should_monitor(repo / "missing.txt", repo, True, config)
    assert not should_monitor(repo, repo, True, config)


def test_should_monitor_rejects_unreadable_file(repo) -> None:
    (a,) = write_files(repo, ["a.txt"])
    a.chmod(0)
    try:
        if os.access(a, os.R_OK):
            pytest.skip("running with permissions that ignore file modes")
        assert not should_monitor(a, repo, True, AutoRevertConfig())
    finally:
        a.chmod(0o644)


def test_file_outside_repository_stays_unmonitored(repo, backend, tmp_path) -> None:
    outside = tmp_path / "outside.txt"
    outside.write_text("x\n")
    backend.tracked.add(outside)
    coordinator, registry = make_coordinator(
        backend, config=AutoRevertConfig(tracked_only=False)
    )

    buffer = registry.open_file(outside)

    assert buffer.monitor is MonitorState.UNMONITORED
    assert buffer.repo_root is None
    assert buffer.vc_state is None
    assert not coordinator.watches.any_watched()


def test_missing_file_in_repository_stays_unmonitored(repo, backend) -> None:
    missing = repo / "gone.txt"
    tracked(backend, missing)
    coordinator, registry = make_coordinator(backend)

    buffer = registry.open_file(missing)

    assert buffer.repo_root == repo
    assert buffer.monitor is MonitorState.UNMONITORED
    assert not coordinator.watches.any_watched()
