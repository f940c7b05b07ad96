"""Engine adapter for the Anthropic Messages API."""

from __future__ import annotations

import json
import socket
from pathlib import Path
from typing import Callable, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config import DocGuardConfig
from ..logging import get_logger
from ..models import EngineResult
from ..prompting.builder import EmbeddedPrompt, PromptBuilder
from ..prompting.constants import MODE_NARRATIVE
from .base import (
    ERROR_AUTH,
    ERROR_OFFLINE,
    ERROR_PARSE,
    ERROR_TIMEOUT,
    ERROR_TRUNCATED,
    ERROR_UNAVAILABLE,
    ERROR_UNKNOWN,
    RemediationTask,
    classify_error,
    sanitize_prompt,
    truncate_detail,
)
from .credentials import resolve_api_key
from .parser import has_no_changes_marker, parse_response

ProgressCallback = Callable[[str], None]

ANTHROPIC_VERSION = "2023-06-01"


class ApiEngine:
    """Sends a content-embedding prompt to a stateless remote model.

    The remote model cannot read the repository, so documentation, generated
    inventories and changed files are inlined, and the response must carry
    complete file contents that are parsed against the target allowlist.
    """

    name = "remote"

    def __init__(
        self,
        builder: PromptBuilder,
        *,
        project_root: Path,
        model: str = "claude-sonnet-4-20250514",
        api_key_env: str = "ANTHROPIC_API_KEY",
        base_url: str = "https://api.anthropic.com",
        max_tokens: int = 32000,
        timeout: float = 120.0,
        environ: Mapping[str, str] | None = None,
        opener: Callable[..., object] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.builder = builder
        self.project_root = project_root
        self.model = model
        self.api_key_env = api_key_env
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.on_progress = on_progress
        self._environ = environ
        self._opener = opener
        self.logger = get_logger("llm.api")

    @classmethod
    def from_config(
        cls,
        config: DocGuardConfig,
        builder: PromptBuilder,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> "ApiEngine":
        narrative = config.auto_fix.narrative
        return cls(
            builder,
            project_root=config.root,
            model=narrative.model,
            api_key_env=narrative.api_key_env,
            base_url=narrative.base_url,
            max_tokens=narrative.max_tokens,
            timeout=narrative.timeout,
            on_progress=on_progress,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1/messages"

    def invoke(self, task: RemediationTask) -> EngineResult:
        api_key = self._api_key()
        if api_key is None:
            return EngineResult.failure(
                f"API key not found. Set {self.api_key_env} in your environment or .env file.",
                kind=ERROR_UNAVAILABLE,
            )

        self._progress("Building API prompt with file contents...")
        classification = task.classification if task.mode == MODE_NARRATIVE else None
        prompt = self.builder.build_embedded_prompt(task.mode, classification)
        if prompt.skipped:
            self.logger.info("Skipped oversize files: %s", ", ".join(prompt.skipped))

        self._progress(f"Calling Anthropic API ({self.model})...")
        return self.send(prompt, api_key=api_key)

    def send(self, prompt: EmbeddedPrompt, *, api_key: str) -> EngineResult:
        """Issue one Messages API request and interpret the reply."""
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": sanitize_prompt(prompt.system),
            "messages": [{"role": "user", "content": sanitize_prompt(prompt.user)}],
        }
        headers = {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        request = Request(
            self.endpoint,
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

        try:
            with self._open(request) as response:  # type: ignore[attr-defined]
                raw = response.read()
        except HTTPError as exc:
            return self._http_failure(exc)
        except (socket.timeout, TimeoutError):
            return self._timeout_failure()
        except URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                return self._timeout_failure()
            detail = str(exc.reason)
            kind = classify_error(detail)
            return EngineResult.failure(self._hint(kind, detail), kind=kind)
        except OSError as exc:
            detail = str(exc)
            kind = classify_error(detail)
            return EngineResult.failure(self._hint(kind, detail), kind=kind)

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return EngineResult.failure("Anthropic API returned invalid JSON", kind=ERROR_PARSE)
        if not isinstance(data, dict):
            return EngineResult.failure("Anthropic API returned an unexpected payload", kind=ERROR_PARSE)

        return self._interpret(data, prompt)

    # ------------------------------------------------------------------
    # Internals

    def _interpret(self, data: dict, prompt: EmbeddedPrompt) -> EngineResult:
        text = self._extract_text(data)
        stop_reason = data.get("stop_reason")
        if stop_reason != "end_turn":
            return EngineResult.failure(
                f"Response truncated (stop_reason: {stop_reason}). "
                "Try reducing max_files/max_file_size or increasing max_tokens.",
                kind=ERROR_TRUNCATED,
                raw_output=text,
            )

        if has_no_changes_marker(text):
            self._progress("API reports no documentation changes needed.")
            return EngineResult(success=True, raw_output=text, updated_files=[])

        parsed = parse_response(text, prompt.targets)
        for warning in parsed.warnings:
            self.logger.warning("%s", warning)
        if not parsed.files:
            return EngineResult.failure(
                f"Response parsing failed: {'; '.join(parsed.warnings)}",
                kind=ERROR_PARSE,
                raw_output=text,
            )

        usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
        self._progress(
            f"API returned updates for {len(parsed.files)} file(s) "
            f"({usage.get('input_tokens', '?')} input, {usage.get('output_tokens', '?')} output tokens)"
        )
        return EngineResult(
            success=True,
            raw_output=text,
            updated_files=parsed.files,
            warnings=parsed.warnings,
        )

    @staticmethod
    def _extract_text(data: dict) -> str:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            return ""
        parts = []
        for block in blocks:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "".join(parts)

    def _http_failure(self, exc: HTTPError) -> EngineResult:
        try:
            detail = exc.read().decode("utf-8", errors="ignore")
        except (OSError, AttributeError):
            detail = ""
        detail = detail.strip() or str(exc.reason)
        if exc.code in (401, 403):
            return EngineResult.failure(self._hint(ERROR_AUTH, detail), kind=ERROR_AUTH)
        if exc.code == 429:
            return EngineResult.failure(
                "Rate limited by Anthropic API. Try again in 60 seconds.", kind=ERROR_UNKNOWN
            )
        return EngineResult.failure(
            f"Anthropic API error ({exc.code}): {truncate_detail(detail)}", kind=ERROR_UNKNOWN
        )

    def _timeout_failure(self) -> EngineResult:
        return EngineResult.failure(
            f"API request timed out after {self.timeout:g}s.", kind=ERROR_TIMEOUT
        )

    def _hint(self, kind: str, detail: str) -> str:
        if kind == ERROR_AUTH:
            return f"Invalid API key. Check {self.api_key_env}."
        if kind == ERROR_OFFLINE:
            return "Anthropic API unreachable (offline). Falling back to prompt mode."
        return f"API request failed: {truncate_detail(detail)}"

    def _api_key(self) -> Optional[str]:
        return resolve_api_key(self.api_key_env, self.project_root, environ=self._environ).key

    def _open(self, request: Request):
        if self._opener is not None:
            return self._opener(request, timeout=self.timeout)
        return urlopen(request, timeout=self.timeout)

    def _progress(self, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(message)


__all__ = ["ANTHROPIC_VERSION", "ApiEngine"]
