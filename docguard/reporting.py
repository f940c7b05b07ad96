"""Human-facing terminal output for check and sync runs."""

from __future__ import annotations

import sys
from typing import Optional, Sequence, TextIO

from .generators import GeneratorResult
from .prompting.builder import CategoryGroup

_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RESET = "\033[0m"

SUMMARY_FILE_LIMIT = 10
PROMPT_BOX_WIDTH = 45


def file_emoji(path: str) -> str:
    """Pick a marker for a documentation or source path."""
    lowered = path.lower()
    if "api-routes" in lowered or "/api/" in f"/{lowered}" or lowered.endswith("route.ts"):
        return "📡"
    if "prisma" in lowered or "model" in lowered:
        return "🗄️"
    if ".env" in lowered or "env-vars" in lowered:
        return "🔑"
    if lowered.endswith("architecture.md"):
        return "📄"
    if lowered.endswith("readme.md"):
        return "📖"
    return "📝"


class TerminalReporter:
    """Writes the silent, success and warning renderings of a run."""

    def __init__(self, stream: TextIO | None = None, *, color: Optional[bool] = None) -> None:
        self.stream = stream if stream is not None else sys.stderr
        if color is None:
            isatty = getattr(self.stream, "isatty", None)
            color = bool(isatty()) if callable(isatty) else False
        self.color = color

    def write(self, text: str = "") -> None:
        self.stream.write(f"{text}\n")
        self.stream.flush()

    def progress(self, message: str) -> None:
        self.write(f"  {message}")

    def positive_note(self) -> None:
        self.write()
        self.write(self._paint("✓ Doc-relevant changes detected, docs also updated. Nice!", _GREEN))
        self.write()

    def auto_fix_summary(
        self, engine: str, files: Sequence[str], *, staged: Sequence[str] = ()
    ) -> None:
        self.write()
        if files:
            self.write(self._paint(f"✓ Documentation auto-updated by {engine}:", _GREEN))
            for path in files:
                self.write(f"  {file_emoji(path)}  {path}")
        else:
            self.write(self._paint(f"✓ {engine} reports documentation is up to date.", _GREEN))
        if staged:
            self.write(f"  Staged: {', '.join(staged)}")
        self.write()

    def warning_block(
        self,
        groups: Sequence[CategoryGroup],
        commands: Sequence[str],
        prompt: str,
        *,
        engine_error: Optional[str] = None,
    ) -> None:
        """Deterministic fallback: affected categories plus a copy-paste prompt."""
        self.write()
        self.write(self._paint("⚠️  Documentation may need updating", _YELLOW))
        self.write(self._paint("━" * 34, _YELLOW))
        if engine_error:
            self.write()
            self.write(f"  {engine_error}")
        self.write()
        self.write("Changed:")
        for group in groups:
            count = len(group.files)
            noun = "file" if count == 1 else "files"
            self.write(f"  {group.emoji}  {group.name} ({count} {noun}):")
            for path in group.files[:SUMMARY_FILE_LIMIT]:
                self.write(f"     - {path}")
            if count > SUMMARY_FILE_LIMIT:
                self.write(f"     ... and {count - SUMMARY_FILE_LIMIT} more")

        if commands:
            self.write()
            self.write("Run these inventory commands:")
            for command in commands:
                self.write(f"  {command}")

        self.prompt_box("Remediation prompt (copy-paste this):", prompt)

    def prompt_box(self, title: str, prompt: str) -> None:
        self.write()
        self.write("┌" + "─" * PROMPT_BOX_WIDTH + "┐")
        self.write("│  " + title.ljust(PROMPT_BOX_WIDTH - 2) + "│")
        self.write("└" + "─" * PROMPT_BOX_WIDTH + "┘")
        self.write()
        self.write(prompt)
        self.write()

    def generator_results(self, results: Sequence[GeneratorResult]) -> None:
        for result in results:
            if result.success:
                summary = result.output.splitlines()[-1] if result.output else "done"
                self.progress(f"{result.command}: {summary}")
            else:
                self.progress(self._paint(f"{result.command} failed: {result.output}", _YELLOW))

    def _paint(self, text: str, colour: str) -> str:
        if not self.color:
            return text
        return f"{colour}{text}{_RESET}"


__all__ = ["TerminalReporter", "file_emoji"]
