"""Tests for docguard.orchestrator."""

from __future__ import annotations

import io
import subprocess
from pathlib import Path

from docguard.commit_message import annotate_commit_message, marker_path
from docguard.generators import GeneratorRunner
from docguard.llm.api_engine import ApiEngine
from docguard.llm.base import ERROR_AUTH, ERROR_UNAVAILABLE
from docguard.llm.cli_engine import CliEngine
from docguard.models import ChangeOutcome, EngineResult, UpdatedFile
from docguard.orchestrator import Orchestrator, build_engines
from docguard.prompting.builder import PromptBuilder
from docguard.prompting.constants import MODE_NARRATIVE, MODE_SYNC
from docguard.reporting import TerminalReporter
from docguard.stores.audit_log import AuditLog

from tests._fixtures.project_builder import ENV_ONLY


class FakeStagedFiles:
    def __init__(self, paths=(), *, exc: Exception | None = None) -> None:
        self.paths = list(paths)
        self.exc = exc

    def collect(self, repo_path: Path) -> list[str]:
        if self.exc is not None:
            raise self.exc
        return list(self.paths)


class RecordingStager:
    """Test double that records staging requests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def stage(self, repo_path: Path, files) -> list[str]:
        staged = [str(item) for item in files]
        self.calls.append(staged)
        return staged


class FakeEngine:
    def __init__(
        self,
        name: str,
        result: EngineResult | None = None,
        *,
        exc: Exception | None = None,
        edits: dict[Path, str] | None = None,
    ) -> None:
        self.name = name
        self.result = result
        self.exc = exc
        self.edits = edits or {}
        self.tasks = []

    def invoke(self, task):
        self.tasks.append(task)
        if self.exc is not None:
            raise self.exc
        for path, content in self.edits.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return self.result


class RecordingRun:
    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.commands: list[list[str]] = []

    def __call__(self, args, **kwargs):
        self.commands.append(list(args))
        return subprocess.CompletedProcess(args, self.returncode, stdout="ok\n", stderr="")


def _orchestrator(project, config, *, staged=(), engines=(), run=None, staged_files=None):
    stream = io.StringIO()
    stager = RecordingStager()
    generator_run = run or RecordingRun()
    orchestrator = Orchestrator(
        config,
        engines=list(engines),
        staged_files=staged_files or FakeStagedFiles(staged),
        stager=stager,
        generator_runner=GeneratorRunner(project.path(), run=generator_run),
        reporter=TerminalReporter(stream, color=False),
    )
    return orchestrator, stream, stager


def _audit(project) -> list[dict[str, object]]:
    return AuditLog.for_project(project.path()).read()


def test_check_applies_engine_updates_and_stages(project) -> None:
    project.write({"docs/ARCHITECTURE.md": "# Old\n"})
    engine = FakeEngine(
        "fake",
        EngineResult(
            success=True,
            updated_files=[
                UpdatedFile(path="docs/ARCHITECTURE.md", content="# New\n"),
                UpdatedFile(path="src/app.ts", content="hacked\n"),
            ],
        ),
    )
    run = RecordingRun()
    orchestrator, stream, stager = _orchestrator(
        project, project.config(), staged=[".env.example"], engines=[engine], run=run
    )

    report = orchestrator.check()

    root = project.path()
    assert report.outcome is ChangeOutcome.NEEDS_REMEDIATION
    assert report.audit_mode == "auto-fix"
    assert report.updated_files == ["docs/ARCHITECTURE.md"]
    assert (root / "docs/ARCHITECTURE.md").read_text(encoding="utf-8") == "# New\n"
    assert not (root / "src/app.ts").exists()
    assert run.commands == [["npm", "run", "gen:env"]]
    assert stager.calls == [["docs/_generated/", "docs/ARCHITECTURE.md"]]
    assert engine.tasks[0].mode == MODE_NARRATIVE
    assert engine.tasks[0].classification.matches == {"env": [".env.example"]}
    assert marker_path(root).exists()
    assert "Documentation auto-updated by fake:" in stream.getvalue()
    entries = _audit(project)
    assert [entry["mode"] for entry in entries] == ["auto-fix"]
    assert entries[0]["engine"] == "fake"
    assert entries[0]["outcome"] == [{"file": "docs/ARCHITECTURE.md", "action": "updated"}]


def test_check_stages_only_targets_the_cli_engine_edited(project) -> None:
    project.write({"docs/ARCHITECTURE.md": "# Arch\n", "README.md": "# Readme\n"})
    root = project.path()
    engine = FakeEngine(
        "subprocess",
        EngineResult(success=True, raw_output="done"),
        edits={root / "docs/ARCHITECTURE.md": "# Edited by agent\n"},
    )
    config = project.config({"auto_fix": {"generators": False}})
    orchestrator, stream, stager = _orchestrator(
        project, config, staged=["src/app/api/users/route.ts"], engines=[engine]
    )

    report = orchestrator.check()

    assert report.audit_mode == "auto-fix"
    assert report.updated_files == ["docs/ARCHITECTURE.md"]
    assert stager.calls == [["docs/ARCHITECTURE.md"]]
    assert "README.md" not in stream.getvalue()
    assert _audit(project)[0]["outcome"] == [{"file": "docs/ARCHITECTURE.md", "action": "updated"}]
    assert marker_path(root).exists()


def test_check_cli_engine_without_edits_is_not_an_autofix(project) -> None:
    project.write({"docs/ARCHITECTURE.md": "# Arch\n"})
    engine = FakeEngine("subprocess", EngineResult(success=True, raw_output="nothing to do"))
    config = project.config({"auto_fix": {"generators": False}})
    orchestrator, stream, stager = _orchestrator(
        project, config, staged=["src/app/api/users/route.ts"], engines=[engine]
    )

    report = orchestrator.check()

    assert report.audit_mode == "skip"
    assert report.updated_files == []
    assert stager.calls == []
    assert "reports documentation is up to date." in stream.getvalue()
    assert not marker_path(project.path()).exists()


def test_check_no_changes_reply_leaves_commit_message_alone(project) -> None:
    engine = FakeEngine("remote", EngineResult(success=True, updated_files=[]))
    config = project.config({"auto_fix": {"generators": False}})
    orchestrator, stream, _stager = _orchestrator(
        project, config, staged=[".env.example"], engines=[engine]
    )
    message_file = project.path() / "COMMIT_EDITMSG"
    message_file.write_text("feat: x\n", encoding="utf-8")

    assert orchestrator.run_check() == 0
    assert not marker_path(project.path()).exists()

    assert annotate_commit_message(message_file, project.path()) is False
    assert message_file.read_text(encoding="utf-8") == "feat: x\n"
    assert "reports documentation is up to date." in stream.getvalue()
    entries = _audit(project)
    assert [(entry["mode"], entry["engine"], entry["outcome"]) for entry in entries] == [
        ("skip", "remote", [])
    ]


def test_check_positive_note_when_docs_also_changed(project) -> None:
    engine = FakeEngine("fake", EngineResult(success=True))
    orchestrator, stream, stager = _orchestrator(
        project,
        project.config(ENV_ONLY),
        staged=[".env.example", "docs/ARCHITECTURE.md"],
        engines=[engine],
    )

    report = orchestrator.check()

    assert report.outcome is ChangeOutcome.POSITIVE_NOTE
    assert "docs also updated. Nice!" in stream.getvalue()
    assert "Remediation prompt" not in stream.getvalue()
    assert engine.tasks == []
    assert stager.calls == []
    entries = _audit(project)
    assert [entry["mode"] for entry in entries] == ["skip"]
    assert entries[0]["outcome"] == [{"file": "docs/ARCHITECTURE.md", "action": "manual"}]


def test_check_is_silent_for_unrelated_changes(project) -> None:
    orchestrator, stream, _stager = _orchestrator(
        project, project.config(ENV_ONLY), staged=["src/unrelated.ts"]
    )

    assert orchestrator.run_check() == 0
    assert stream.getvalue() == ""
    assert not AuditLog.for_project(project.path()).path.exists()


def test_check_without_engines_prints_prompt_block(project) -> None:
    config = project.config(ENV_ONLY)
    builder = PromptBuilder(config)
    engines = [
        CliEngine(builder, cwd=project.path(), which=lambda name: None),
        ApiEngine(builder, project_root=project.path(), environ={}),
    ]
    orchestrator, stream, _stager = _orchestrator(
        project, config, staged=[".env.example"], engines=engines
    )

    assert orchestrator.run_check() == 0

    output = stream.getvalue()
    assert "Documentation may need updating" in output
    assert "Environment Variables (1 file):" in output
    assert "     - .env.example" in output
    assert "Changed Environment Variables:" in output
    assert "- Read .env.example: update Environment Variables section" in output
    assert "API key not found. Set ANTHROPIC_API_KEY" in output
    entries = _audit(project)
    assert [entry["mode"] for entry in entries] == ["prompt"]
    assert entries[0]["engine"] == "remote"
    assert not marker_path(project.path()).exists()


def test_check_falls_back_to_second_engine(project) -> None:
    first = FakeEngine("subprocess", EngineResult.failure("claude login", kind=ERROR_AUTH))
    second = FakeEngine("remote", EngineResult(success=True, updated_files=[]))
    orchestrator, stream, _stager = _orchestrator(
        project, project.config(ENV_ONLY), staged=[".env.example"], engines=[first, second]
    )

    report = orchestrator.check()

    assert report.engine == "remote"
    assert report.audit_mode == "skip"
    assert len(first.tasks) == 1 and len(second.tasks) == 1
    assert "remote reports documentation is up to date." in stream.getvalue()


def test_check_stops_at_first_successful_engine(project) -> None:
    first = FakeEngine("subprocess", EngineResult(success=True))
    second = FakeEngine("remote", EngineResult(success=True, updated_files=[]))
    orchestrator, _stream, _stager = _orchestrator(
        project, project.config(ENV_ONLY), staged=[".env.example"], engines=[first, second]
    )

    orchestrator.check()

    assert second.tasks == []


def test_check_engine_exception_degrades_to_prompt(project) -> None:
    engine = FakeEngine("fake", exc=RuntimeError("kaboom"))
    orchestrator, stream, _stager = _orchestrator(
        project, project.config(ENV_ONLY), staged=[".env.example"], engines=[engine]
    )

    assert orchestrator.run_check() == 0
    assert "fake engine failed: kaboom" in stream.getvalue()
    assert "Remediation prompt (copy-paste this):" in stream.getvalue()


def test_check_skips_engines_when_no_trigger_matches(project) -> None:
    engine = FakeEngine("fake", EngineResult(success=True))
    orchestrator, stream, _stager = _orchestrator(
        project, project.config(), staged=["src/app/settings/page.tsx"], engines=[engine]
    )

    report = orchestrator.check()

    assert engine.tasks == []
    assert report.audit_mode == "prompt"
    assert "Page Routes (1 file):" in stream.getvalue()


def test_check_skips_engines_when_narrative_disabled(project) -> None:
    engine = FakeEngine("fake", EngineResult(success=True))
    config = project.config({**ENV_ONLY, "auto_fix": {"narrative": {"enabled": False}}})
    orchestrator, _stream, _stager = _orchestrator(
        project, config, staged=[".env.example"], engines=[engine]
    )

    report = orchestrator.check()

    assert engine.tasks == []
    assert report.prompt is not None
    assert "Changed Environment Variables:" in report.prompt


def test_check_stages_generated_dir_even_when_falling_back(project) -> None:
    orchestrator, _stream, stager = _orchestrator(
        project, project.config(), staged=["src/app/api/users/route.ts"]
    )

    report = orchestrator.check()

    assert report.audit_mode == "prompt"
    assert stager.calls == [["docs/_generated/"]]


def test_run_check_never_raises(project) -> None:
    orchestrator, _stream, _stager = _orchestrator(
        project,
        project.config(),
        staged_files=FakeStagedFiles(exc=RuntimeError("index locked")),
    )

    assert orchestrator.run_check() == 0


def test_run_sync_runs_generators_and_engine(project) -> None:
    project.write({"docs/ARCHITECTURE.md": "# Arch\n"})
    run = RecordingRun()
    engine = FakeEngine(
        "subprocess",
        EngineResult(success=True),
        edits={project.path() / "docs/ARCHITECTURE.md": "# Arch, synced\n"},
    )
    orchestrator, stream, stager = _orchestrator(project, project.config(), engines=[engine], run=run)

    assert orchestrator.run_sync() == 0

    assert run.commands == [["npm", "run", "gen:env"], ["npm", "run", "gen:api-routes"]]
    assert engine.tasks[0].mode == MODE_SYNC
    assert stager.calls == [["docs/_generated/", "docs/ARCHITECTURE.md"]]
    assert "Updated: docs/ARCHITECTURE.md" in stream.getvalue()
    entries = _audit(project)
    assert [entry["mode"] for entry in entries] == ["sync"]
    assert entries[0]["outcome"] == [{"file": "docs/ARCHITECTURE.md", "action": "sync"}]


def test_run_sync_reports_no_changes_when_engine_edits_nothing(project) -> None:
    engine = FakeEngine("subprocess", EngineResult(success=True))
    orchestrator, stream, stager = _orchestrator(project, project.config(), engines=[engine])

    assert orchestrator.run_sync() == 0

    assert stager.calls == [["docs/_generated/"]]
    assert "No documentation changes needed." in stream.getvalue()


def test_run_sync_prints_manual_prompt_when_engine_unavailable(project) -> None:
    engine = FakeEngine("subprocess", EngineResult.failure("claude missing", kind=ERROR_UNAVAILABLE))
    orchestrator, stream, _stager = _orchestrator(project, project.config(), engines=[engine])

    assert orchestrator.run_sync() == 0

    output = stream.getvalue()
    assert "claude missing" in output
    assert "Manual alternative (copy-paste this):" in output
    assert "This is a complete sync" in output


def test_run_sync_reports_engine_failure(project) -> None:
    engine = FakeEngine("remote", EngineResult.failure("Invalid API key.", kind=ERROR_AUTH))
    orchestrator, _stream, _stager = _orchestrator(project, project.config(), engines=[engine])

    assert orchestrator.run_sync() == 1


def test_run_gen_reports_generator_failure(project) -> None:
    orchestrator, stream, _stager = _orchestrator(
        project, project.config(), run=RecordingRun(returncode=1)
    )

    assert orchestrator.run_gen() == 1
    assert "npm run gen:env failed" in stream.getvalue()


def test_build_engines_follows_configured_order(project) -> None:
    config = project.config(
        {"auto_fix": {"narrative": {"engine": "api", "fallback_engine": "cli"}}}
    )

    engines = build_engines(config, PromptBuilder(config))

    assert [engine.name for engine in engines] == ["remote", "subprocess"]
    assert isinstance(engines[0], ApiEngine)
    assert isinstance(engines[1], CliEngine)
