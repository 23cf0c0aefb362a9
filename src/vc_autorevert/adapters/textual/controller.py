"""UI-agnostic controller that wires the revert coordinator into host callbacks."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from vc_autorevert.buffer import BufferView, FileBuffer, InMemoryBufferRegistry
from vc_autorevert.revert import RevertCoordinator, RevertPassResult, revert_all
from vc_autorevert.vc import CommandOutcome, GitCommandError, GitRunner


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualRevertHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_buffers: Callable[[Sequence[BufferView]], None]
    update_status: Callable[[str], None] = _noop
    show_output: Callable[[str], None] = _noop
    log: Callable[[str], None] = _noop


def describe_pass(result: RevertPassResult) -> str:
    parts = [f"reverted {len(result.reverted)}"]
    if result.deferred:
        parts.append(f"deferred {len(result.deferred)}")
    if result.failed:
        parts.append(f"failed {len(result.failed)}")
    if result.skipped:
        parts.append(f"skipped {len(result.skipped)} modified")
    return ", ".join(parts)


class TextualRevertAdapter:
    """Bridges buffers, the coordinator and the Git runner to a UI surface.

    Command lines starting with ``:`` are adapter commands (``:revert``,
    ``:monitor on|off``, ``:open <path>``, ``:kill <path>``); anything else
    is handed to Git.
    """

    def __init__(
        self,
        coordinator: RevertCoordinator,
        registry: InMemoryBufferRegistry,
        runner: GitRunner,
        hooks: TextualRevertHooks,
    ) -> None:
        self.coordinator = coordinator
        self.registry = registry
        self.runner = runner
        self.hooks = hooks
        self._commands: Dict[str, Callable[[List[str]], None]] = {
            "revert": self._cmd_revert,
            "monitor": self._cmd_monitor,
            "open": self._cmd_open,
            "kill": self._cmd_kill,
        }
        registry.subscribe(
            created=coordinator.buffer_created, killed=coordinator.buffer_killed
        )
        self._refresh_buffers()

    def open_file(self, path: Path | str) -> FileBuffer:
        buffer = self.registry.open_file(path)
        self._log("open ->", buffer=buffer.name, monitor=buffer.monitor.value)
        self._refresh_buffers()
        return buffer

    def rows(self) -> List[BufferView]:
        return [buffer.snapshot() for buffer in self.registry.iter_buffers()]

    def submit_command(self, line: str) -> Optional[CommandOutcome]:
        """Run one line typed into the command input."""

        line = line.strip()
        if not line:
            return None
        if line.startswith(":"):
            words = shlex.split(line[1:])
            handler = self._commands.get(words[0]) if words else None
            if handler is None:
                self.hooks.update_status(f"unknown command: {line}")
                return None
            handler(words[1:])
            self._refresh_buffers()
            return None
        return self._run_git(line)

    def process_deferred(self) -> RevertPassResult:
        """Retry buffers left over by an earlier, budget-limited pass."""

        if not self.coordinator.deferred:
            return RevertPassResult()
        result = self.coordinator.drain_deferred()
        self._log("deferred ->", result=describe_pass(result))
        if result.processed:
            self.hooks.update_status(describe_pass(result))
            self._refresh_buffers()
        return result

    def _run_git(self, line: str) -> Optional[CommandOutcome]:
        self._log("git ->", command=line)
        try:
            outcome = self.runner.run_line(line)
        except GitCommandError as exc:
            self.hooks.update_status(f"git failed: {exc}")
            self._refresh_buffers()
            return None
        except ValueError as exc:
            self.hooks.update_status(str(exc))
            return None
        self.hooks.show_output(outcome.stdout or outcome.stderr)
        if outcome.mutating:
            self._reevaluate_unmonitored()
        if outcome.revert is not None:
            self.hooks.update_status(describe_pass(outcome.revert))
        else:
            self.hooks.update_status(f"git {outcome.args[0]}: ok")
        self._refresh_buffers()
        return outcome

    def _reevaluate_unmonitored(self) -> None:
        # staging can turn an unregistered file into a tracked one
        for buffer in self.registry.iter_buffers():
            if not buffer.monitored:
                self.coordinator.reevaluate(buffer)

    def _cmd_revert(self, _args: List[str]) -> None:
        result = revert_all(self.coordinator, self.coordinator.watches.watched())
        self.hooks.update_status(describe_pass(result))

    def _cmd_monitor(self, args: List[str]) -> None:
        enabled = not args or args[0].lower() in {"on", "1", "true", "yes"}
        self.coordinator.reconfigure(
            replace(self.coordinator.config, local_mode=enabled)
        )
        self.hooks.update_status(f"monitoring {'on' if enabled else 'off'}")

    def _cmd_open(self, args: List[str]) -> None:
        for path in args:
            self.open_file(path)

    def _cmd_kill(self, args: List[str]) -> None:
        for path in args:
            buffer = self.registry.find_buffer_for_file(Path(path))
            if buffer is not None:
                self.registry.kill(buffer)

    def _refresh_buffers(self) -> None:
        self.hooks.update_buffers(self.rows())

    def _log(self, prefix: str, **fields: object) -> None:
        parts = [prefix]
        for key, value in fields.items():
            if value is not None:
                parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))


__all__ = ["TextualRevertAdapter", "TextualRevertHooks", "describe_pass"]
