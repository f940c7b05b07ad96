"""Engine adapter for a local agent CLI that edits files itself."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..config import DocGuardConfig
from ..logging import get_logger
from ..models import EngineResult
from ..prompting.builder import PromptBuilder
from ..prompting.constants import MODE_SYNC
from .base import (
    ERROR_AUTH,
    ERROR_OFFLINE,
    ERROR_TIMEOUT,
    ERROR_UNAVAILABLE,
    RemediationTask,
    classify_error,
    sanitize_prompt,
    truncate_detail,
)

ProgressCallback = Callable[[str], None]


class CliEngine:
    """Pipes a reference-only prompt into an agent CLI (``claude -p -`` by default).

    The CLI reads and writes the documentation files on its own, so a
    successful result carries no ``updated_files``.
    """

    name = "subprocess"

    def __init__(
        self,
        builder: PromptBuilder,
        *,
        cwd: Path,
        executable: str = "claude",
        args: Sequence[str] = ("-p", "-"),
        timeout: float = 120.0,
        which: Callable[[str], Optional[str]] | None = None,
        run: Callable[..., subprocess.CompletedProcess] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.builder = builder
        self.cwd = cwd
        self.executable = executable
        self.args = list(args)
        self.timeout = timeout
        self.on_progress = on_progress
        self._which = which or shutil.which
        self._run = run or subprocess.run
        self.logger = get_logger("llm.cli")

    @classmethod
    def from_config(
        cls,
        config: DocGuardConfig,
        builder: PromptBuilder,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> "CliEngine":
        narrative = config.auto_fix.narrative
        return cls(
            builder,
            cwd=config.root,
            executable=narrative.executable,
            args=narrative.executable_args,
            timeout=narrative.timeout,
            on_progress=on_progress,
        )

    @property
    def label(self) -> str:
        return Path(self.executable).name or self.executable

    def is_available(self) -> bool:
        return self._which(self.executable) is not None

    def invoke(self, task: RemediationTask) -> EngineResult:
        resolved = self._which(self.executable)
        if resolved is None:
            return EngineResult.failure(
                f"{self.label} not found on PATH. Install it or point "
                "auto_fix.narrative.executable at the binary.",
                kind=ERROR_UNAVAILABLE,
            )

        if task.mode == MODE_SYNC:
            prompt = self.builder.build_sync_reference_prompt()
        else:
            prompt = self.builder.build_reference_prompt(task.classification)
        self._progress(f"Calling {self.label} for narrative doc updates...")
        result = self.run_prompt(prompt, executable=resolved)
        if result.success:
            self._progress(f"{self.label} finished updating docs")
        return result

    def run_prompt(self, prompt: str, *, executable: str | None = None) -> EngineResult:
        """Deliver ``prompt`` through a temporary file bound to the CLI's stdin."""
        sanitized = sanitize_prompt(prompt)
        command = [executable or self.executable, *self.args]
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                prefix="docguard-prompt-",
                suffix=".txt",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(sanitized)

            self.logger.debug("Running %s with prompt file %s", " ".join(command), temp_path)
            with temp_path.open("r", encoding="utf-8") as stdin:
                completed = self._run(
                    command,
                    stdin=stdin,
                    cwd=str(self.cwd),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
        except subprocess.TimeoutExpired:
            return EngineResult.failure(
                f"{self.label} timed out after {self.timeout:g}s. Falling back to prompt mode.",
                kind=ERROR_TIMEOUT,
            )
        except OSError as exc:
            detail = str(exc)
            kind = classify_error(detail)
            return EngineResult.failure(self._hint(kind, detail), kind=kind)
        finally:
            if temp_path is not None:
                self._cleanup(temp_path)

        stdout = completed.stdout or ""
        if completed.returncode != 0:
            detail = (completed.stderr or "").strip() or stdout.strip()
            detail = detail or f"exit code {completed.returncode}"
            kind = classify_error(detail)
            return EngineResult.failure(self._hint(kind, detail), kind=kind, raw_output=stdout)
        return EngineResult(success=True, raw_output=stdout.strip())

    # ------------------------------------------------------------------
    # Helpers

    def _hint(self, kind: str, detail: str) -> str:
        if kind == ERROR_AUTH:
            return f"Log in to {self.label} for automatic doc updates: {self.label} login"
        if kind == ERROR_OFFLINE:
            return f"{self.label} unavailable (offline). Falling back to prompt mode."
        return f"{self.label} failed: {truncate_detail(detail)}. Falling back to prompt mode."

    def _cleanup(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            self.logger.debug("Unable to remove prompt file %s: %s", path, exc)

    def _progress(self, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(message)


__all__ = ["CliEngine"]
