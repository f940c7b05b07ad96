"""Pipeline orchestration for the pre-commit check and full sync flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .classifier import ChangeClassifier
from .commit_message import mark_autofix
from .config import DocGuardConfig
from .generators import GeneratorResult, GeneratorRunner, collect_generator_commands
from .git.staged import StagedFiles
from .git.stager import Stager
from .llm.api_engine import ApiEngine
from .llm.base import ERROR_UNAVAILABLE, Engine, RemediationTask
from .llm.cli_engine import CliEngine
from .logging import get_logger
from .models import ChangeOutcome, ClassificationResult, EngineResult
from .prompting.builder import PromptBuilder
from .prompting.constants import MODE_NARRATIVE, MODE_SYNC
from .reporting import TerminalReporter
from .stores.audit_log import AuditLog

EngineFactory = Callable[..., Engine]

ENGINE_FACTORIES: Dict[str, EngineFactory] = {
    "subprocess": CliEngine.from_config,
    "remote": ApiEngine.from_config,
}


@dataclass
class EngineAttempt:
    """Which engine answered last and what it said."""

    engine: Optional[str]
    result: EngineResult


@dataclass
class CheckReport:
    """What a pre-commit check decided and did."""

    outcome: ChangeOutcome
    classification: ClassificationResult = field(default_factory=ClassificationResult)
    audit_mode: Optional[str] = None
    engine: Optional[str] = None
    updated_files: List[str] = field(default_factory=list)
    staged_files: List[str] = field(default_factory=list)
    engine_error: Optional[str] = None
    prompt: Optional[str] = None


def build_engines(
    config: DocGuardConfig,
    builder: PromptBuilder,
    *,
    on_progress: Callable[[str], None] | None = None,
) -> List[Engine]:
    """Configured engine first, then the optional fallback engine."""
    narrative = config.auto_fix.narrative
    names: List[str] = [narrative.engine]
    if narrative.fallback_engine and narrative.fallback_engine not in names:
        names.append(narrative.fallback_engine)
    return [ENGINE_FACTORIES[name](config, builder, on_progress=on_progress) for name in names]


class Orchestrator:
    """Coordinates classification, engine calls, staging, auditing and reporting.

    The configuration is loaded once by the caller and passed in; nothing
    here re-reads it from disk.
    """

    def __init__(
        self,
        config: DocGuardConfig,
        *,
        classifier: ChangeClassifier | None = None,
        prompt_builder: PromptBuilder | None = None,
        engines: Optional[Iterable[Engine]] = None,
        staged_files: StagedFiles | None = None,
        stager: Stager | None = None,
        generator_runner: GeneratorRunner | None = None,
        audit_log: AuditLog | None = None,
        reporter: TerminalReporter | None = None,
    ) -> None:
        self.config = config
        self.root = config.root
        self.classifier = classifier or ChangeClassifier.from_config(config)
        self.prompt_builder = prompt_builder or PromptBuilder(config)
        self.reporter = reporter or TerminalReporter()
        if engines is None:
            engines = build_engines(config, self.prompt_builder, on_progress=self.reporter.progress)
        self.engines = list(engines)
        self.staged_files = staged_files or StagedFiles()
        self.stager = stager or Stager()
        self.generator_runner = generator_runner or GeneratorRunner(
            config.root, timeout=config.auto_fix.narrative.timeout
        )
        self.audit_log = audit_log or AuditLog.for_project(config.root)
        self.logger = get_logger("orchestrator")

    @classmethod
    def from_config(
        cls, config: DocGuardConfig, *, reporter: TerminalReporter | None = None
    ) -> "Orchestrator":
        return cls(config, reporter=reporter)

    # ------------------------------------------------------------------
    # Incremental (pre-commit) path

    def run_check(self, paths: Optional[Sequence[str]] = None) -> int:
        """Run the pre-commit check. Always returns 0 so commits are never blocked."""
        try:
            self.check(paths)
        except Exception as exc:  # never block a commit
            self._log_exception("Pre-commit doc check failed", exc)
            self._fallback_after_error(paths)
        return 0

    def check(self, paths: Optional[Sequence[str]] = None) -> CheckReport:
        staged = list(paths) if paths is not None else self.staged_files.collect(self.root)
        self.logger.debug("Total staged files: %d", len(staged))
        for path in staged:
            self.logger.debug("  staged: %s", path)
        if not staged:
            self.logger.debug("No staged files. Nothing to check.")
            return CheckReport(outcome=ChangeOutcome.SILENT)

        result = self.classifier.classify(staged)
        outcome = self.classifier.outcome(result, staged)
        self._log_classification(result, staged)

        if outcome is ChangeOutcome.SILENT:
            self.logger.debug("No doc-relevant changes detected.")
            return CheckReport(outcome=outcome, classification=result)

        if outcome is ChangeOutcome.POSITIVE_NOTE:
            self.reporter.positive_note()
            docs = [path for path in staged if self.classifier.is_doc_file(path)]
            self._audit("skip", outcome=[{"file": path, "action": "manual"} for path in docs])
            return CheckReport(outcome=outcome, classification=result, audit_mode="skip")

        return self._remediate(result)

    def _remediate(self, result: ClassificationResult) -> CheckReport:
        report = CheckReport(outcome=ChangeOutcome.NEEDS_REMEDIATION, classification=result)
        generated_dir: List[str] = []
        if self.config.auto_fix.generators:
            generated_dir = self._run_matched_generators(result)

        narrative = self.config.auto_fix.narrative
        if not narrative.enabled:
            self.logger.debug("Narrative auto-fix disabled; printing prompt instead.")
        elif not self.classifier.triggers_narrative(result, narrative.narrative_triggers):
            self.logger.debug("No narrative trigger category matched; printing prompt instead.")
        else:
            before = self._snapshot_targets()
            attempt = self._run_engines(RemediationTask(mode=MODE_NARRATIVE, classification=result))
            report.engine = attempt.engine
            if attempt.result.success:
                doc_files = self._collect_updates(attempt.result, before)
                staged = self._stage([*generated_dir, *doc_files])
                report.updated_files = doc_files
                report.staged_files = staged
                self.reporter.auto_fix_summary(
                    self._engine_label(attempt.engine), doc_files, staged=staged
                )
                if not doc_files:
                    report.audit_mode = "skip"
                    self._audit("skip", engine=attempt.engine)
                    return report
                report.audit_mode = "auto-fix"
                self._mark_autofix()
                self._audit(
                    "auto-fix",
                    engine=attempt.engine,
                    outcome=[{"file": path, "action": "updated"} for path in doc_files],
                )
                return report
            report.engine_error = attempt.result.error_message

        report.prompt = self._print_fallback(result, report.engine_error)
        report.staged_files = self._stage(generated_dir) if generated_dir else []
        report.audit_mode = "prompt"
        self._audit("prompt", engine=report.engine)
        return report

    # ------------------------------------------------------------------
    # Full sync path

    def run_sync(self) -> int:
        """Regenerate inventories, then run a full-audit engine pass. Advisory exit code."""
        try:
            return self._sync()
        except Exception as exc:
            self._log_exception("Full documentation sync failed", exc)
            self.reporter.prompt_box(
                "Manual alternative (copy-paste this):",
                self.prompt_builder.build_sync_reference_prompt(),
            )
            return 1

    def _sync(self) -> int:
        self.reporter.write()
        self.reporter.write("  docguard sync: full documentation pass")
        self.reporter.write()
        self.reporter.progress("Step 1: Running generators...")
        generator_results = self.run_generators()
        generators_ok = all(item.success for item in generator_results)

        self.reporter.progress("Step 2: Running narrative sync...")
        before = self._snapshot_targets()
        attempt = self._run_engines(RemediationTask(mode=MODE_SYNC))
        if attempt.result.success:
            changed = self._collect_updates(attempt.result, before)
            staged = self._stage([self.config.generated_dir, *changed])
            if changed:
                for path in changed:
                    self.reporter.progress(f"Updated: {path}")
            else:
                self.reporter.progress("No documentation changes needed.")
            if staged:
                self.reporter.progress("Changes staged.")
            self._audit(
                "sync",
                engine=attempt.engine,
                outcome=[{"file": path, "action": "sync"} for path in changed],
            )
            return 0 if generators_ok else 1

        self.reporter.progress(attempt.result.error_message or "Engine failed.")
        self.reporter.prompt_box(
            "Manual alternative (copy-paste this):",
            self.prompt_builder.build_sync_reference_prompt(),
        )
        self._audit("sync", engine=attempt.engine)
        engine_ok = attempt.result.error_kind == ERROR_UNAVAILABLE
        return 0 if generators_ok and engine_ok else 1

    def run_generators(self) -> List[GeneratorResult]:
        commands = collect_generator_commands(self.config.categories)
        if not commands:
            self.reporter.progress("No generator commands configured.")
            return []
        self.reporter.progress(f"Generating {len(commands)} inventories...")
        results = self.generator_runner.run(commands)
        self.reporter.generator_results(results)
        return results

    def run_gen(self) -> int:
        results = self.run_generators()
        return 0 if all(item.success for item in results) else 1

    # ------------------------------------------------------------------
    # Internals

    def _run_engines(self, task: RemediationTask) -> EngineAttempt:
        """Try each engine in order; stop at the first success."""
        last: Optional[EngineAttempt] = None
        for engine in self.engines:
            self.logger.debug("Trying %s engine", engine.name)
            try:
                result = engine.invoke(task)
            except Exception as exc:
                self._log_exception(f"{engine.name} engine raised", exc)
                result = EngineResult.failure(f"{engine.name} engine failed: {exc}")
            if result.success:
                return EngineAttempt(engine=engine.name, result=result)
            self.logger.info("%s engine failed (%s): %s", engine.name, result.error_kind, result.error_message)
            last = EngineAttempt(engine=engine.name, result=result)
        if last is not None:
            return last
        return EngineAttempt(
            engine=None,
            result=EngineResult.failure("No remediation engine configured.", kind=ERROR_UNAVAILABLE),
        )

    def _apply_updates(self, result: EngineResult) -> List[str]:
        """Write allowlisted file contents returned by the engine; return paths changed."""
        if not result.updated_files:
            return []
        allowed = set(self.config.narrative_targets)
        root = self.root.resolve()
        written: List[str] = []
        for update in result.updated_files:
            if update.path not in allowed:
                self.logger.warning("Refusing to write undeclared path %s", update.path)
                continue
            target = (root / update.path).resolve()
            try:
                target.relative_to(root)
            except ValueError:
                self.logger.warning("Refusing to write outside the project: %s", update.path)
                continue
            current = target.read_text(encoding="utf-8") if target.exists() else None
            if current == update.content:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(update.content, encoding="utf-8")
            written.append(update.path)
        return written

    def _collect_updates(
        self, result: EngineResult, before: Dict[str, Optional[str]]
    ) -> List[str]:
        """Paths the engine changed, either written here or edited on disk by the engine."""
        if result.updated_files is not None:
            return self._apply_updates(result)
        after = self._snapshot_targets()
        return [path for path in self.config.narrative_targets if after[path] != before[path]]

    def _snapshot_targets(self) -> Dict[str, Optional[str]]:
        snapshot: Dict[str, Optional[str]] = {}
        for path in self.config.narrative_targets:
            target = self.root / path
            try:
                snapshot[path] = target.read_text(encoding="utf-8") if target.is_file() else None
            except (OSError, UnicodeDecodeError):
                snapshot[path] = None
        return snapshot

    def _stage(self, paths: Sequence[str]) -> List[str]:
        if not paths:
            return []
        try:
            return self.stager.stage(self.root, paths)
        except Exception as exc:
            self._log_exception("Staging failed", exc)
            return []

    def _run_matched_generators(self, result: ClassificationResult) -> List[str]:
        commands = self.prompt_builder.generator_commands(result)
        if not commands:
            return []
        try:
            results = self.generator_runner.run(commands)
        except Exception as exc:
            self._log_exception("Generator run failed", exc)
            return []
        for item in results:
            if not item.success:
                self.logger.warning("Generator '%s' failed: %s", item.command, item.output)
        if any(item.success for item in results):
            return [self.config.generated_dir]
        return []

    def _print_fallback(self, result: ClassificationResult, engine_error: Optional[str]) -> str:
        groups = self.prompt_builder.category_groups(result)
        commands = self.prompt_builder.generator_commands(result)
        try:
            prompt = self.prompt_builder.build_reference_prompt(result)
        except Exception as exc:
            self._log_exception("Prompt rendering failed", exc)
            prompt = self._plain_prompt(result)
        self.reporter.warning_block(groups, commands, prompt, engine_error=engine_error)
        return prompt

    def _fallback_after_error(self, paths: Optional[Sequence[str]]) -> None:
        try:
            staged = list(paths) if paths is not None else self.staged_files.collect(self.root)
            result = self.classifier.classify(staged)
            if result.has_matches and not self.classifier.includes_doc_change(staged):
                self._print_fallback(result, None)
        except Exception as exc:
            self._log_exception("Could not print the remediation prompt", exc)

    def _plain_prompt(self, result: ClassificationResult) -> str:
        lines = [
            "The following files were changed and documentation may need updating.",
            f"Update {', '.join(self.config.narrative_targets)} accordingly.",
            "",
        ]
        for category in self.config.categories:
            files = result.matches.get(category.id)
            if not files:
                continue
            lines.append(f"Changed {category.name}:")
            lines.extend(f"- Read {path}" for path in files)
            lines.append("")
        lines.append("Do NOT modify any source code files.")
        return "\n".join(lines)

    def _audit(
        self,
        mode: str,
        *,
        engine: Optional[str] = None,
        outcome: Iterable[Dict[str, str]] = (),
    ) -> None:
        try:
            self.audit_log.record(mode, engine=engine, outcome=outcome)
        except (OSError, ValueError) as exc:
            self.logger.warning("Could not write audit log: %s", exc)

    def _mark_autofix(self) -> None:
        try:
            mark_autofix(self.root)
        except OSError as exc:
            self.logger.debug("Could not write auto-fix marker: %s", exc)

    def _engine_label(self, name: Optional[str]) -> str:
        for engine in self.engines:
            if engine.name == name:
                return getattr(engine, "label", None) or engine.name
        return name or "engine"

    def _log_classification(self, result: ClassificationResult, staged: Sequence[str]) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        self.logger.debug("Category matches:")
        for category in self.config.categories:
            files = result.matches.get(category.id)
            if files:
                self.logger.debug("  %s: %d file(s)", category.name, len(files))
        self.logger.debug("Unmatched (ignored): %d", len(result.unmatched))
        self.logger.debug("Doc files staged: %s", self.classifier.includes_doc_change(staged))
        self.logger.debug("Has doc-relevant code: %s", result.has_matches)

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = [
    "CheckReport",
    "ENGINE_FACTORIES",
    "EngineAttempt",
    "Orchestrator",
    "build_engines",
]
