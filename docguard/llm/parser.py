"""Extract file updates from free-text engine responses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List

from ..models import UpdatedFile
from ..prompting.constants import NO_CHANGES_MARKERS, UPDATED_FILE_TAG

_UPDATED_FILE_PATTERN = re.compile(
    rf'<{UPDATED_FILE_TAG}\s+path="([^"]+)"\s*>\s*(.*?)\s*</{UPDATED_FILE_TAG}>',
    re.DOTALL,
)


@dataclass
class ParsedResponse:
    """Allowlisted file updates plus anything worth warning about."""

    files: List[UpdatedFile] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    no_changes: bool = False


def has_no_changes_marker(text: str) -> bool:
    return any(marker in text for marker in NO_CHANGES_MARKERS)


def parse_response(text: object, allowed_paths: Iterable[str]) -> ParsedResponse:
    """Collect ``<updated-file>`` blocks whose path is allowlisted.

    Blocks for any other path are dropped with a warning. Malformed input
    yields zero files and warnings instead of an exception.
    """
    parsed = ParsedResponse()
    if not isinstance(text, str):
        parsed.warnings.append("Response was empty or not text.")
        return parsed

    allowed = {path for path in allowed_paths}
    parsed.no_changes = has_no_changes_marker(text)
    for match in _UPDATED_FILE_PATTERN.finditer(text):
        path = match.group(1).strip()
        content = match.group(2)
        if path in allowed:
            parsed.files.append(UpdatedFile(path=path, content=_ensure_trailing_newline(content)))
        else:
            parsed.warnings.append(f"Ignoring unexpected file in response: {path}")

    if not parsed.files and not parsed.no_changes:
        parsed.warnings.append(f"No <{UPDATED_FILE_TAG}> markers found in response.")
    return parsed


def _ensure_trailing_newline(content: str) -> str:
    if content and not content.endswith("\n"):
        return content + "\n"
    return content


__all__ = ["ParsedResponse", "has_no_changes_marker", "parse_response"]
