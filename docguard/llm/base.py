"""Shared contract and helpers for remediation engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ..models import ClassificationResult, EngineResult
from ..prompting.constants import MODE_NARRATIVE

ERROR_AUTH = "auth"
ERROR_OFFLINE = "offline"
ERROR_UNKNOWN = "unknown"
ERROR_UNAVAILABLE = "unavailable"
ERROR_TIMEOUT = "timeout"
ERROR_TRUNCATED = "truncated"
ERROR_PARSE = "parse"

_AUTH_MARKERS: tuple[str, ...] = (
    "not authenticated",
    "login",
    "log in",
    "unauthorized",
    "unauthorised",
    "authentication",
    "invalid api key",
    "invalid x-api-key",
    "forbidden",
)

_OFFLINE_MARKERS: tuple[str, ...] = (
    "enotfound",
    "network",
    "offline",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "connection refused",
    "connection reset",
    "unreachable",
)


@dataclass
class RemediationTask:
    """What the orchestrator asks an engine to do."""

    mode: str = MODE_NARRATIVE
    classification: ClassificationResult = field(default_factory=ClassificationResult)


class Engine(Protocol):
    """Protocol implemented by remediation engines."""

    name: str

    def invoke(self, task: RemediationTask) -> EngineResult:
        """Run the engine and report a uniform result; never raises for engine failures."""


def sanitize_prompt(prompt: str) -> str:
    """Strip NUL bytes and normalise line endings to LF. Idempotent."""
    return prompt.replace("\0", "").replace("\r\n", "\n").replace("\r", "\n")


def classify_error(text: str | None) -> str:
    """Bucket failure text into auth, offline, or unknown."""
    if not text:
        return ERROR_UNKNOWN
    lowered = text.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return ERROR_AUTH
    if any(marker in lowered for marker in _OFFLINE_MARKERS):
        return ERROR_OFFLINE
    return ERROR_UNKNOWN


def truncate_detail(detail: str, limit: int = 200) -> str:
    cleaned = " ".join(detail.strip().split())
    return cleaned[:limit]


__all__ = [
    "ERROR_AUTH",
    "ERROR_OFFLINE",
    "ERROR_PARSE",
    "ERROR_TIMEOUT",
    "ERROR_TRUNCATED",
    "ERROR_UNAVAILABLE",
    "ERROR_UNKNOWN",
    "Engine",
    "RemediationTask",
    "classify_error",
    "sanitize_prompt",
    "truncate_detail",
]
