"""Staged-change inspection."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List

from ..logging import get_logger


class StagedFiles:
    """Lists the paths staged for the next commit."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git.staged")

    def collect(self, repo_path: Path) -> List[str]:
        """Return staged paths relative to the repository root; ``[]`` when git fails."""
        try:
            output = self._run(
                ["git", "diff", "--cached", "--name-only"],
                cwd=repo_path,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            self.logger.debug("Unable to list staged files: %s", exc)
            return []
        return [line.strip().replace("\\", "/") for line in output.splitlines() if line.strip()]

    # ------------------------------------------------------------------
    # Internals

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


__all__ = ["StagedFiles"]
