"""Compile category descriptors into path predicates."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Set

from .models import Category

PathPredicate = Callable[[str], bool]


class RuleError(ValueError):
    """Raised when a category cannot be turned into a predicate."""


@dataclass(frozen=True)
class CompiledRule:
    """A category paired with the predicate that decides membership."""

    category: Category
    predicate: PathPredicate

    def matches(self, path: str) -> bool:
        return self.predicate(path)


def compile_rules(categories: Iterable[Category]) -> List[CompiledRule]:
    """Return one compiled rule per category, preserving declaration order."""
    compiled: List[CompiledRule] = []
    seen: Set[str] = set()
    for category in categories:
        if category.id in seen:
            raise RuleError(f"duplicate category id '{category.id}'")
        seen.add(category.id)
        compiled.append(CompiledRule(category=category, predicate=build_predicate(category)))
    return compiled


def build_predicate(category: Category) -> PathPredicate:
    pattern = category.pattern
    if not isinstance(pattern, str) or not pattern:
        raise RuleError(f"category '{category.id}' has an empty pattern")

    kind = category.pattern_kind
    if kind == "exact":
        return lambda path: path == pattern
    if kind == "prefix":
        return lambda path: path.startswith(pattern)
    if kind == "regex":
        try:
            regex = re.compile(pattern)
        except re.error as exc:
            raise RuleError(
                f"category '{category.id}' has an invalid regex {pattern!r}: {exc}"
            ) from exc
        return lambda path: regex.search(path) is not None
    raise RuleError(f"category '{category.id}' has unknown pattern kind '{kind}'")


__all__ = ["CompiledRule", "PathPredicate", "RuleError", "build_predicate", "compile_rules"]
