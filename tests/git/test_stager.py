"""Tests for staging documentation updates."""

from __future__ import annotations

import subprocess
from pathlib import Path

from docguard.git.stager import Stager


def _repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    (repo / "docs" / "_generated").mkdir(parents=True)
    (repo / "docs" / "ARCHITECTURE.md").write_text("# Arch\n", encoding="utf-8")
    return repo


def test_stager_adds_existing_files(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    calls = []

    def runner(args, cwd):
        calls.append((list(args), Path(cwd)))
        return ""

    staged = Stager(runner=runner).stage(
        repo, ["docs/ARCHITECTURE.md", "README.md", "docs/_generated/", repo / "docs/ARCHITECTURE.md"]
    )

    assert staged == ["docs/ARCHITECTURE.md", "docs/_generated"]
    assert calls == [(["git", "add", "--", "docs/ARCHITECTURE.md", "docs/_generated"], repo)]


def test_stager_noop_without_git_repo(tmp_path: Path) -> None:
    repo = tmp_path / "plain"
    repo.mkdir()
    (repo / "README.md").write_text("hi\n", encoding="utf-8")
    calls = []

    staged = Stager(runner=lambda args, cwd: calls.append(args)).stage(repo, ["README.md"])

    assert staged == []
    assert calls == []


def test_stager_swallows_git_failures(tmp_path: Path) -> None:
    repo = _repo(tmp_path)

    def runner(args, cwd):
        raise subprocess.CalledProcessError(1, list(args))

    assert Stager(runner=runner).stage(repo, ["docs/ARCHITECTURE.md"]) == []
