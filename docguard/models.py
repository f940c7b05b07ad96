"""Core data models shared across docguard components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

PATTERN_KINDS: tuple[str, ...] = ("exact", "prefix", "regex")

AUDIT_MODES: tuple[str, ...] = ("auto-fix", "prompt", "sync", "skip")


@dataclass(frozen=True)
class Category:
    """Maps a file-path pattern to a documentation obligation."""

    id: str
    name: str
    pattern: str
    pattern_kind: str = "exact"
    doc_target: str = ""
    emoji: str = "📦"
    generator_command: Optional[str] = None


@dataclass
class ClassificationResult:
    """Changed paths partitioned into categories (first match wins) and leftovers."""

    matches: Dict[str, List[str]] = field(default_factory=dict)
    unmatched: List[str] = field(default_factory=list)

    @property
    def has_matches(self) -> bool:
        return any(self.matches.values())

    @property
    def matched_count(self) -> int:
        return sum(len(paths) for paths in self.matches.values())

    def files_for(self, category_id: str) -> List[str]:
        return list(self.matches.get(category_id, []))

    def all_matched(self) -> List[str]:
        ordered: List[str] = []
        for paths in self.matches.values():
            ordered.extend(paths)
        return ordered


class ChangeOutcome(str, Enum):
    """Three-way decision derived from a classification."""

    SILENT = "silent"
    POSITIVE_NOTE = "positive-note"
    NEEDS_REMEDIATION = "needs-remediation"


@dataclass(frozen=True)
class UpdatedFile:
    """Complete replacement content for one documentation file."""

    path: str
    content: str


@dataclass
class EngineResult:
    """Uniform outcome of a remediation engine call."""

    success: bool
    raw_output: str = ""
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    updated_files: Optional[List[UpdatedFile]] = None
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.success and not (self.error_message or "").strip():
            raise ValueError("A failed EngineResult requires an error_message")

    @classmethod
    def failure(
        cls, message: str, *, kind: str = "unknown", raw_output: str = ""
    ) -> "EngineResult":
        return cls(success=False, raw_output=raw_output, error_message=message, error_kind=kind)


@dataclass
class AuditEntry:
    """One historical record of a remediation attempt."""

    timestamp: str
    mode: str
    engine: Optional[str] = None
    outcome: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "mode": self.mode,
            "engine": self.engine,
            "outcome": [dict(item) for item in self.outcome],
        }


__all__ = [
    "AUDIT_MODES",
    "AuditEntry",
    "Category",
    "ChangeOutcome",
    "ClassificationResult",
    "EngineResult",
    "PATTERN_KINDS",
    "UpdatedFile",
]
