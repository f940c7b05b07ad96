"""Builds remediation prompts for documentation engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from ..config import DocGuardConfig
from ..logging import get_logger
from ..models import ClassificationResult
from .constants import (
    MODE_NARRATIVE,
    MODE_SYNC,
    NO_CHANGES_MARKER,
    OVERFLOW_TEMPLATE,
    PROMPT_MODES,
    SCAN_PATH_LABELS,
    UPDATED_FILE_TAG,
)


@dataclass(frozen=True)
class EmbeddedFile:
    """A file inlined into a prompt for engines that cannot read the disk."""

    path: str
    content: str


@dataclass
class CategoryGroup:
    """Changed files of one category, capped for display."""

    id: str
    name: str
    emoji: str
    doc_target: str
    files: List[str]
    shown: List[str]
    overflow: int
    generator_command: Optional[str] = None


@dataclass
class EmbeddedPrompt:
    """System and user messages plus the files the engine may rewrite."""

    system: str
    user: str
    targets: List[str]
    embedded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class PromptBuilder:
    """Renders reference-only and content-embedding prompts from templates."""

    def __init__(self, config: DocGuardConfig, *, templates_dir: Path | None = None) -> None:
        self.config = config
        self.templates_dir = templates_dir or config.templates_dir
        self.logger = get_logger("prompting")
        self._env = self._create_env(self.templates_dir)

    @property
    def targets(self) -> List[str]:
        return self.config.narrative_targets

    def category_groups(self, result: ClassificationResult) -> List[CategoryGroup]:
        """Matched categories in declaration order, each capped at max_listed_files."""
        limit = self.config.auto_fix.narrative.max_listed_files
        architecture_file = self.config.architecture_file
        groups: List[CategoryGroup] = []
        for category in self.config.categories:
            files = result.matches.get(category.id)
            if not files:
                continue
            groups.append(
                CategoryGroup(
                    id=category.id,
                    name=category.name,
                    emoji=category.emoji,
                    doc_target=f"{category.doc_target} in {architecture_file}",
                    files=list(files),
                    shown=list(files[:limit]),
                    overflow=max(len(files) - limit, 0),
                    generator_command=category.generator_command,
                )
            )
        return groups

    def generator_commands(self, result: ClassificationResult) -> List[str]:
        """Generator commands of the matched categories, deduplicated in order."""
        commands: List[str] = []
        for group in self.category_groups(result):
            command = group.generator_command
            if command and command not in commands:
                commands.append(command)
        return commands

    def build_reference_prompt(self, result: ClassificationResult) -> str:
        """Prompt listing changed paths only, for engines that read the filesystem."""
        return self._render(
            "reference.j2",
            groups=self.category_groups(result),
            commands=self.generator_commands(result),
            overflow_template=OVERFLOW_TEMPLATE,
        )

    def build_sync_reference_prompt(self) -> str:
        """Full-audit prompt for engines that read the filesystem."""
        return self._render(
            "sync_reference.j2",
            scan_paths=self._scan_path_items(),
            categories=self.config.categories,
        )

    def build_embedded_prompt(
        self, mode: str, result: ClassificationResult | None = None
    ) -> EmbeddedPrompt:
        """Prompt with file contents inlined, for stateless remote engines.

        ``narrative`` mode embeds the changed files (capped by count and size,
        oversize files are skipped rather than truncated); ``sync`` mode omits
        them and lists the whole category catalogue instead.
        """
        if mode not in PROMPT_MODES:
            raise ValueError(f"Unknown prompt mode '{mode}'")

        documents = self._read_files(self.targets)
        inventories = self._read_inventories()
        sources: List[EmbeddedFile] = []
        skipped: List[str] = []
        groups: List[CategoryGroup] = []
        if mode == MODE_NARRATIVE and result is not None:
            groups = self.category_groups(result)
            sources, skipped = self._read_changed_files(groups)

        system = self._render("system.j2")
        user = self._render(
            "embedded.j2",
            mode=mode,
            documents=documents,
            inventories=inventories,
            sources=sources,
            skipped=skipped,
            max_file_size=self.config.auto_fix.narrative.max_file_size,
            categories=self.config.categories if mode == MODE_SYNC else [],
            groups=groups,
        )
        return EmbeddedPrompt(
            system=system,
            user=user,
            targets=list(self.targets),
            embedded=[item.path for item in sources],
            skipped=skipped,
        )

    # ------------------------------------------------------------------
    # Internals

    def _render(self, template_name: str, **context: object) -> str:
        base_context: Dict[str, object] = {
            "project_name": self.config.project_name,
            "framework": self.config.framework,
            "architecture_file": self.config.architecture_file,
            "generated_dir": self.config.generated_dir,
            "agent_files": self.config.agent_files,
            "targets": self.targets,
            "tag": UPDATED_FILE_TAG,
            "no_changes_marker": NO_CHANGES_MARKER,
        }
        base_context.update(context)
        template = self._env.get_template(template_name)
        return template.render(**base_context).strip()

    def _scan_path_items(self) -> List[tuple[str, str]]:
        items: List[tuple[str, str]] = []
        for key, path in self.config.scan_paths.items():
            label = SCAN_PATH_LABELS.get(key, key.replace("_", " ").capitalize())
            items.append((label, path))
        return items

    def _read_files(self, paths: Sequence[str]) -> List[EmbeddedFile]:
        contents: List[EmbeddedFile] = []
        for rel_path in paths:
            text = self._read_text(rel_path)
            if text is not None:
                contents.append(EmbeddedFile(path=rel_path, content=text))
        return contents

    def _read_inventories(self) -> List[EmbeddedFile]:
        generated_dir = self.config.generated_dir
        directory = self.config.root / generated_dir
        if not directory.is_dir():
            return []
        prefix = generated_dir.replace("\\", "/").rstrip("/")
        inventories: List[EmbeddedFile] = []
        for path in sorted(directory.glob("*.md")):
            if not path.is_file():
                continue
            rel_path = f"{prefix}/{path.name}" if prefix else path.name
            text = self._read_text(rel_path)
            if text is not None:
                inventories.append(EmbeddedFile(path=rel_path, content=text))
        return inventories

    def _read_changed_files(
        self, groups: Sequence[CategoryGroup]
    ) -> tuple[List[EmbeddedFile], List[str]]:
        narrative = self.config.auto_fix.narrative
        sources: List[EmbeddedFile] = []
        skipped: List[str] = []
        seen: set[str] = set()
        for group in groups:
            for rel_path in group.files:
                if len(sources) >= narrative.max_files:
                    return sources, skipped
                if rel_path in seen:
                    continue
                seen.add(rel_path)
                full_path = self._inside_root(rel_path)
                if full_path is None or not full_path.is_file():
                    continue
                try:
                    size = full_path.stat().st_size
                except OSError:
                    continue
                if size > narrative.max_file_size:
                    self.logger.debug("Skipping %s (%d bytes exceeds limit)", rel_path, size)
                    skipped.append(rel_path)
                    continue
                text = self._read_text(rel_path)
                if text is not None:
                    sources.append(EmbeddedFile(path=rel_path, content=text))
        return sources, skipped

    def _read_text(self, rel_path: str) -> Optional[str]:
        full_path = self._inside_root(rel_path)
        if full_path is None or not full_path.is_file():
            return None
        try:
            return full_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            self.logger.debug("Unable to read %s: %s", rel_path, exc)
            return None

    def _inside_root(self, rel_path: str) -> Optional[Path]:
        root = self.config.root.resolve()
        candidate = (root / rel_path).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        return candidate

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["CategoryGroup", "EmbeddedFile", "EmbeddedPrompt", "PromptBuilder"]
