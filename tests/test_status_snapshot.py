from __future__ import annotations

from pathlib import Path

import pytest

from vc_autorevert.vc import (
    StatusSnapshot,
    StatusTag,
    capture,
    lookup_or_refresh,
    mode_line_string,
    parse_porcelain_z,
    pending_paths,
    tag_for_code,
)


@pytest.mark.parametrize(
    ("code", "tag"),
    [
        ("??", StatusTag.UNREGISTERED),
        ("!!", StatusTag.IGNORED),
        ("UU", StatusTag.CONFLICTED),
        ("AA", StatusTag.CONFLICTED),
        ("A ", StatusTag.ADDED),
        ("AM", StatusTag.ADDED),
        ("D ", StatusTag.REMOVED),
        (" D", StatusTag.MISSING),
        (" M", StatusTag.MODIFIED),
        ("R ", StatusTag.MODIFIED),
        ("", StatusTag.UP_TO_DATE),
    ],
)
def test_tag_for_code(code: str, tag: StatusTag) -> None:
    assert tag_for_code(code) is tag


def test_parse_porcelain_skips_rename_origin(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    output = " M a.txt\0R  new.txt\0old.txt\0?? sub/c.txt\0"

    entries = parse_porcelain_z(output, root)

    assert entries == [
        (root / "a.txt", " M"),
        (root / "new.txt", "R "),
        (root / "sub" / "c.txt", "??"),
    ]


def test_pending_paths_dedup_preserves_first_seen_order(repo: Path) -> None:
    a, b, c = repo / "a.txt", repo / "b.txt", repo / "c.txt"
    pre = StatusSnapshot(
        root=repo,
        tracked_only=True,
        entries={a: StatusTag.MODIFIED, b: StatusTag.ADDED},
    )
    post = StatusSnapshot(
        root=repo,
        tracked_only=True,
        entries={c: StatusTag.MODIFIED, a: StatusTag.MODIFIED, b: StatusTag.MODIFIED},
    )

    assert pending_paths(pre, post) == [a, b, c]
    assert pending_paths(None, post) == [c, a, b]


def test_capture_scopes_to_tracked_files(repo: Path, backend) -> None:
    a, c = repo / "a.txt", repo / "c.txt"
    backend.statuses = {a: " M", c: "??"}

    tracked_only = capture(backend, repo, tracked_only=True)
    everything = capture(backend, repo, tracked_only=False)

    assert tracked_only.paths() == (a,)
    assert everything.get(c) is StatusTag.UNREGISTERED
    assert everything.branch == "main"
    assert backend.status_calls == [True, False]


def test_capture_failure_returns_empty_snapshot(repo: Path, backend) -> None:
    backend.fail_queries = True

    snapshot = capture(backend, repo, tracked_only=True)

    assert len(snapshot) == 0
    assert snapshot.root == repo


def test_lookup_uses_snapshot_before_querying(repo: Path, backend) -> None:
    a = repo / "a.txt"
    snapshot = StatusSnapshot(
        root=repo, tracked_only=True, entries={a: StatusTag.CONFLICTED}
    )
    backend.statuses = {a: " M"}

    assert lookup_or_refresh(backend, a, snapshot) is StatusTag.CONFLICTED
    assert backend.file_calls == []


def test_lookup_falls_back_to_file_query(repo: Path, backend) -> None:
    a, b = repo / "a.txt", repo / "b.txt"
    backend.tracked = {b}
    snapshot = StatusSnapshot(root=repo, tracked_only=True)

    assert lookup_or_refresh(backend, b, snapshot) is StatusTag.UP_TO_DATE
    assert lookup_or_refresh(backend, a, None) is None
    assert backend.file_calls == [b, a]


def test_lookup_failure_is_unknown(repo: Path, backend) -> None:
    backend.fail_queries = True

    assert lookup_or_refresh(backend, repo / "a.txt", None) is None


def test_mode_line_string() -> None:
    assert mode_line_string("Git", StatusTag.UP_TO_DATE, "main") == "Git-main"
    assert mode_line_string("Git", StatusTag.MODIFIED, "main") == "Git:main"
    assert mode_line_string("Git", StatusTag.ADDED, "dev") == "Git@dev"
    assert mode_line_string("Git", StatusTag.CONFLICTED, None) == "Git!?"
    assert mode_line_string("Git", StatusTag.UNREGISTERED, "main") is None
