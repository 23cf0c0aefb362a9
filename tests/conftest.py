from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from vc_autorevert.vc import VcQueryError

_UNTRACKED = {"??", "!!"}


class FakeBackend:
    """In-memory ``VcBackend`` whose status table tests edit directly."""

    name = "Git"

    def __init__(
        self,
        root: Path,
        *,
        statuses: Optional[Dict[Path, str]] = None,
        tracked: Iterable[Path] = (),
        branch: str = "main",
    ) -> None:
        self.root = root
        self.statuses: Dict[Path, str] = dict(statuses or {})
        self.tracked = set(tracked)
        self.branch = branch
        self.fail_queries = False
        self.status_calls: List[bool] = []
        self.file_calls: List[Path] = []

    def toplevel_of(self, path: Path) -> Optional[Path]:
        if path == self.root or self.root in path.parents:
            return self.root
        return None

    def list_status(self, root: Path, tracked_only: bool) -> list[tuple[Path, str]]:
        self.status_calls.append(tracked_only)
        if self.fail_queries:
            raise VcQueryError("repository vanished")
        return [
            (path, code)
            for path, code in self.statuses.items()
            if not (tracked_only and code in _UNTRACKED)
        ]

    def file_status(self, path: Path) -> Optional[str]:
        self.file_calls.append(path)
        if self.fail_queries:
            raise VcQueryError("repository vanished")
        if path in self.statuses:
            return self.statuses[path]
        if path in self.tracked:
            return ""
        return None

    def is_tracked(self, path: Path) -> bool:
        code = self.statuses.get(path)
        if code is not None:
            return code not in _UNTRACKED
        return path in self.tracked

    def current_branch(self, root: Path) -> Optional[str]:
        return self.branch


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = (tmp_path / "repo").resolve()
    root.mkdir()
    return root


@pytest.fixture
def backend(repo: Path) -> FakeBackend:
    return FakeBackend(repo)


def _git(root: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=root, check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Real repository on ``main`` with ``a.txt`` committed."""

    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    for key, value in {
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
        "GIT_CONFIG_NOSYSTEM": "1",
        "HOME": str(tmp_path),
    }.items():
        monkeypatch.setenv(key, value)

    root = (tmp_path / "work").resolve()
    root.mkdir()
    _git(root, "init", "-q")
    _git(root, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(root, "config", "commit.gpgsign", "false")
    (root / "a.txt").write_text("one\n")
    _git(root, "add", "a.txt")
    _git(root, "commit", "-q", "-m", "first")
    return root


@pytest.fixture
def git():
    return _git
