"""Tests for directory fingerprints and diffs."""

from __future__ import annotations

import hashlib
from pathlib import Path

from skillsync.fingerprint import diff_hashes, fingerprint


def _write(root: Path, files: dict) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def test_fingerprint_hashes_every_file_with_posix_paths(tmp_path: Path) -> None:
    _write(tmp_path, {"SKILL.md": "hello", "scripts/run.sh": "echo hi"})
    (tmp_path / "empty").mkdir()

    hashes = fingerprint(tmp_path)

    assert hashes == {
        "SKILL.md": hashlib.sha256(b"hello").hexdigest(),
        "scripts/run.sh": hashlib.sha256(b"echo hi").hexdigest(),
    }


def test_fingerprint_is_deterministic(tmp_path: Path) -> None:
    _write(tmp_path, {"a.txt": "a", "nested/b.txt": "b"})

    assert fingerprint(tmp_path) == fingerprint(tmp_path)


def test_fingerprint_of_missing_directory_is_empty(tmp_path: Path) -> None:
    assert fingerprint(tmp_path / "missing") == {}


def test_fingerprint_skips_git_metadata(tmp_path: Path) -> None:
    _write(tmp_path, {"SKILL.md": "x", ".git/HEAD": "ref: refs/heads/main"})

    assert list(fingerprint(tmp_path)) == ["SKILL.md"]


def test_diff_of_identical_maps_is_up_to_date() -> None:
    hashes = {"SKILL.md": "1", "a.txt": "2"}

    diff = diff_hashes(hashes, dict(hashes))

    assert diff.up_to_date
    assert (diff.added, diff.removed, diff.changed) == ([], [], [])


def test_diff_reports_added_removed_and_changed() -> None:
    local = {"SKILL.md": "1", "old.txt": "2", "same.txt": "3"}
    remote = {"SKILL.md": "9", "new.txt": "4", "same.txt": "3"}

    diff = diff_hashes(local, remote)

    assert diff.added == ["new.txt"]
    assert diff.removed == ["old.txt"]
    assert diff.changed == ["SKILL.md"]
    assert not diff.up_to_date


def test_diff_against_empty_local_adds_everything() -> None:
    diff = diff_hashes({}, {"SKILL.md": "1"})

    assert diff.added == ["SKILL.md"]
    assert not diff.removed and not diff.changed
