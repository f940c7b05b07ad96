"""Run the inventory generator commands declared by categories."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List

from .logging import get_logger
from .models import Category


@dataclass(frozen=True)
class GeneratorResult:
    """Outcome of one generator command."""

    command: str
    success: bool
    output: str


def collect_generator_commands(categories: Iterable[Category]) -> List[str]:
    """Generator commands in declaration order, without duplicates."""
    commands: List[str] = []
    for category in categories:
        command = category.generator_command
        if command and command not in commands:
            commands.append(command)
    return commands


class GeneratorRunner:
    """Executes generator commands from the project root; failures are reported, not raised."""

    def __init__(
        self,
        root: Path,
        *,
        timeout: float = 120.0,
        run: Callable[..., subprocess.CompletedProcess] | None = None,
    ) -> None:
        self.root = root
        self.timeout = timeout
        self._run = run or subprocess.run
        self.logger = get_logger("generators")

    def run(self, commands: Iterable[str]) -> List[GeneratorResult]:
        results: List[GeneratorResult] = []
        seen: set[str] = set()
        for command in commands:
            if not command or command in seen:
                continue
            seen.add(command)
            results.append(self.run_one(command))
        return results

    def run_one(self, command: str) -> GeneratorResult:
        try:
            args = shlex.split(command)
        except ValueError as exc:
            return GeneratorResult(command=command, success=False, output=f"Invalid command: {exc}")
        if not args:
            return GeneratorResult(command=command, success=False, output="Empty command")

        self.logger.debug("Running generator: %s", command)
        try:
            completed = self._run(
                args,
                cwd=str(self.root),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return GeneratorResult(
                command=command, success=False, output=f"Timed out after {self.timeout:g}s"
            )
        except OSError as exc:
            return GeneratorResult(command=command, success=False, output=str(exc))

        output = ((completed.stdout or "") + (completed.stderr or "")).strip()
        if completed.returncode != 0:
            self.logger.warning("Generator '%s' exited with %d", command, completed.returncode)
            return GeneratorResult(
                command=command,
                success=False,
                output=output or f"exit code {completed.returncode}",
            )
        return GeneratorResult(command=command, success=True, output=output)


__all__ = ["GeneratorResult", "GeneratorRunner", "collect_generator_commands"]
