"""Subprocess-backed Git queries used by the status cache and the watcher."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from vc_autorevert.runtime import telemetry

from .status import VcQueryError

StatusEntry = tuple[Path, str]


class VcBackend(Protocol):
    """Queries the revert coordinator needs from a version-control system."""

    name: str

    def toplevel_of(self, path: Path) -> Optional[Path]:
        """Return the repository root containing ``path`` or ``None``."""
        ...

    def list_status(self, root: Path, tracked_only: bool) -> List[StatusEntry]:
        """Return ``(absolute path, status code)`` pairs for changed files."""
        ...

    def file_status(self, path: Path) -> Optional[str]:
        """Status code for one file; ``""`` if unchanged, ``None`` if unknown."""
        ...

    def is_tracked(self, path: Path) -> bool:
        ...

    def current_branch(self, root: Path) -> Optional[str]:
        ...


def run_git(
    args: Sequence[str], cwd: Path | None = None, check: bool = True
) -> subprocess.CompletedProcess[str]:
    """Run a git command with safe argument passing."""
    cmd = ["git"] + list(args)
    try:
        return subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            check=check,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as exc:
        raise VcQueryError("Git not found on PATH.", command=tuple(cmd)) from exc
    except subprocess.CalledProcessError as exc:
        # surface stderr to caller
        raise VcQueryError(
            (exc.stderr or "").strip() or str(exc), command=tuple(cmd)
        ) from exc


def parse_porcelain_z(text: str, root: Path) -> List[StatusEntry]:
    """Parse ``git status --porcelain -z`` output into absolute paths.

    Rename and copy records carry the original path as an extra NUL-separated
    field; only the destination is kept.
    """

    entries: List[StatusEntry] = []
    fields = text.split("\0")
    index = 0
    while index < len(fields):
        record = fields[index]
        index += 1
        if len(record) < 4:
            continue
        code, rel = record[:2], record[3:]
        if code[0] in "RC":
            index += 1
        entries.append(((root / rel).resolve(), code))
    return entries


class GitBackend:
    """``VcBackend`` implementation that shells out to ``git``."""

    name = "Git"

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._logger_name = logger_name or "vc_autorevert.git"

    def toplevel_of(self, path: Path) -> Optional[Path]:
        directory = path if path.is_dir() else path.parent
        if not directory.is_dir():
            return None
        cp = run_git(
            ["-C", str(directory), "rev-parse", "--show-toplevel"], check=False
        )
        if cp.returncode != 0:
            return None
        top = cp.stdout.strip()
        return Path(top).resolve() if top else None

    def list_status(self, root: Path, tracked_only: bool) -> List[StatusEntry]:
        args = ["-C", str(root), "status", "--porcelain", "-z"]
        if tracked_only:
            args.append("--untracked-files=no")
        else:
            args += ["--untracked-files=all", "--ignored"]
        with telemetry.span(
            "git::status",
            logger_name=self._logger_name,
            metadata={"root": root, "tracked_only": tracked_only},
        ):
            cp = run_git(args)
        return parse_porcelain_z(cp.stdout, root)

    def file_status(self, path: Path) -> Optional[str]:
        root = self.toplevel_of(path)
        if root is None:
            return None
        cp = run_git(
            [
                "-C",
                str(root),
                "status",
                "--porcelain",
                "-z",
                "--untracked-files=all",
                "--ignored",
                "--",
                str(path),
            ]
        )
        entries = parse_porcelain_z(cp.stdout, root)
        if entries:
            return entries[0][1]
        if self.is_tracked(path):
            return ""
        return None

    def is_tracked(self, path: Path) -> bool:
        cp = run_git(
            ["-C", str(path.parent), "ls-files", "--error-unmatch", "--", path.name],
            check=False,
        )
        return cp.returncode == 0

    def current_branch(self, root: Path) -> Optional[str]:
        cp = run_git(
            ["-C", str(root), "symbolic-ref", "--short", "-q", "HEAD"], check=False
        )
        if cp.returncode == 0 and cp.stdout.strip():
            return cp.stdout.strip()
        cp = run_git(["-C", str(root), "rev-parse", "--short", "HEAD"], check=False)
        if cp.returncode == 0 and cp.stdout.strip():
            return cp.stdout.strip()
        return None


__all__ = [
    "GitBackend",
    "StatusEntry",
    "VcBackend",
    "parse_porcelain_z",
    "run_git",
]
