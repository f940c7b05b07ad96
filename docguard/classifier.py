"""Partition changed paths into documentation categories."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .config import DocGuardConfig
from .models import ChangeOutcome, ClassificationResult
from .rules import CompiledRule, compile_rules


class ChangeClassifier:
    """Maps changed files to categories using first-match-wins rules.

    Categories are evaluated in declaration order and a path stops at the
    first rule that accepts it, so more specific categories must be declared
    before broader ones. Duplicate input paths are kept once per occurrence.
    """

    def __init__(
        self,
        rules: Sequence[CompiledRule],
        *,
        docs_dir: str = "docs/",
        agent_files: Iterable[str] = (".cursorrules",),
    ) -> None:
        self.rules = list(rules)
        self.docs_dir = docs_dir
        self.agent_files = tuple(agent_files)

    @classmethod
    def from_config(cls, config: DocGuardConfig) -> "ChangeClassifier":
        return cls(
            compile_rules(config.categories),
            docs_dir=config.docs_dir,
            agent_files=config.agent_files,
        )

    def classify(self, paths: Iterable[str]) -> ClassificationResult:
        result = ClassificationResult()
        for path in paths:
            for rule in self.rules:
                if rule.matches(path):
                    result.matches.setdefault(rule.category.id, []).append(path)
                    break
            else:
                result.unmatched.append(path)
        return result

    def is_doc_file(self, path: str) -> bool:
        if self.docs_dir and path.startswith(self.docs_dir):
            return True
        return path in self.agent_files

    def includes_doc_change(self, paths: Iterable[str]) -> bool:
        return any(self.is_doc_file(path) for path in paths)

    def outcome(self, result: ClassificationResult, paths: Iterable[str]) -> ChangeOutcome:
        if not result.has_matches:
            return ChangeOutcome.SILENT
        if self.includes_doc_change(paths):
            return ChangeOutcome.POSITIVE_NOTE
        return ChangeOutcome.NEEDS_REMEDIATION

    @staticmethod
    def triggers_narrative(result: ClassificationResult, triggers: Sequence[str]) -> bool:
        """Return True when a matched category is allowed to invoke an engine."""
        matched = [category_id for category_id, paths in result.matches.items() if paths]
        if not triggers:
            return bool(matched)
        return any(category_id in triggers for category_id in matched)

    def matched_categories(self, result: ClassificationResult) -> List[CompiledRule]:
        """Rules with at least one match, in declaration order."""
        return [rule for rule in self.rules if result.matches.get(rule.category.id)]


__all__ = ["ChangeClassifier"]
