"""Run Git commands, bracketing mutating ones with the revert coordinator."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from vc_autorevert.runtime import telemetry

from .git import run_git
from .status import VcQueryError

if TYPE_CHECKING:
    from vc_autorevert.revert import RevertCoordinator, RevertPassResult

# Subcommands that never touch the working tree or the index.
READ_ONLY_COMMANDS = frozenset(
    {
        "blame",
        "cat-file",
        "describe",
        "diff",
        "grep",
        "log",
        "ls-files",
        "ls-tree",
        "rev-list",
        "rev-parse",
        "shortlog",
        "show",
        "status",
    }
)

# Global options whose value is passed as the following argument.
VALUE_OPTIONS = frozenset({"-C", "-c", "--git-dir", "--work-tree", "--namespace"})


class GitCommandError(RuntimeError):
    """A Git command run through ``GitRunner`` exited non-zero."""

    def __init__(self, message: str, *, args: Sequence[str], returncode: int) -> None:
        super().__init__(message)
        self.args_used = tuple(args)
        self.returncode = returncode


@dataclass(slots=True)
class CommandOutcome:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    mutating: bool
    revert: Optional["RevertPassResult"] = None


def _subcommand(args: Sequence[str]) -> Optional[str]:
    rest = iter(args)
    for arg in rest:
        if arg in VALUE_OPTIONS:
            next(rest, None)
        elif not arg.startswith("-"):
            return arg
    return None


def is_mutating(args: Sequence[str]) -> bool:
    """Whether ``git <args>`` may change the working tree or the index."""

    subcommand = _subcommand(args)
    return subcommand is not None and subcommand not in READ_ONLY_COMMANDS


class GitRunner:
    """Runs ``git`` in one repository on behalf of a host."""

    def __init__(self, coordinator: "RevertCoordinator", root: Path) -> None:
        self.coordinator = coordinator
        self.root = root

    def run_line(self, line: str) -> CommandOutcome:
        args = shlex.split(line)
        if args and args[0] == "git":
            args = args[1:]
        return self.run(args)

    def run(self, args: Sequence[str]) -> CommandOutcome:
        """Run ``git <args>`` and revert affected buffers afterwards."""

        if not args:
            raise ValueError("No git command given")
        mutating = is_mutating(args)
        with telemetry.span(
            "git::run",
            logger_name="vc_autorevert.git",
            component="runner",
            metadata={"command": " ".join(args), "mutating": mutating},
        ) as handle:
            if not mutating:
                completed = self._invoke(args)
                revert = None
            else:
                self.coordinator.before_operation(self.root)
                try:
                    completed = self._invoke(args)
                finally:
                    revert = self.coordinator.after_operation(self.root)
                handle.add_metadata("reverted", len(revert.reverted))
            outcome = CommandOutcome(
                args=tuple(args),
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
                mutating=mutating,
                revert=revert,
            )
        if completed.returncode != 0:
            raise GitCommandError(
                completed.stderr.strip() or f"git {args[0]} failed",
                args=args,
                returncode=completed.returncode,
            )
        return outcome

    def _invoke(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        try:
            return run_git(["-C", str(self.root), *args], check=False)
        except VcQueryError as exc:
            raise GitCommandError(str(exc), args=args, returncode=127) from exc


__all__ = [
    "CommandOutcome",
    "GitCommandError",
    "GitRunner",
    "READ_ONLY_COMMANDS",
    "is_mutating",
]
