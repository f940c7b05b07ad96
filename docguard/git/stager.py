"""Stage documentation updates produced during a commit."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..logging import get_logger


class Stager:
    """Adds files to the git index so auto-fixed docs land in the pending commit."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git.stager")

    def stage(self, repo_path: Path, files: Sequence[Path | str]) -> List[str]:
        """Stage existing ``files``; return the relative paths that were added."""
        repo = Path(repo_path)
        if not (repo / ".git").exists():
            self.logger.debug("%s is not a git work tree; skipping staging", repo)
            return []

        relative_files: List[str] = []
        for file in files:
            path = Path(file)
            full_path = path if path.is_absolute() else repo / path
            if not full_path.exists():
                continue
            rel = self._to_relative(repo, full_path)
            if rel not in relative_files:
                relative_files.append(rel)
        if not relative_files:
            return []

        try:
            self._run(["git", "add", "--", *relative_files], cwd=repo)
        except (OSError, subprocess.CalledProcessError) as exc:
            self.logger.warning("Could not stage %s: %s", ", ".join(relative_files), exc)
            return []
        return relative_files

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _to_relative(repo: Path, file_path: Path) -> str:
        try:
            return file_path.resolve().relative_to(repo.resolve()).as_posix()
        except ValueError:
            return file_path.as_posix()

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        return self._runner(args, cwd=cwd)

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
        )
        return completed.stdout


__all__ = ["Stager"]
