"""Annotate commit messages when docs were auto-updated during the commit."""

from __future__ import annotations

from pathlib import Path

from .stores.audit_log import LOG_DIRNAME

AUTOFIX_SUFFIX = "(docs auto-updated by docguard)"
MARKER_FILENAME = "autofix-pending"


def append_autofix_message(message: str) -> str:
    """Append the auto-fix note once, after trimming trailing whitespace."""
    if AUTOFIX_SUFFIX in message:
        return message
    trimmed = "\n".join(line.rstrip() for line in message.rstrip().splitlines())
    if not trimmed:
        return f"{AUTOFIX_SUFFIX}\n"
    return f"{trimmed}\n\n{AUTOFIX_SUFFIX}\n"


def marker_path(root: Path) -> Path:
    return root / LOG_DIRNAME / MARKER_FILENAME


def mark_autofix(root: Path) -> None:
    path = marker_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("1\n", encoding="utf-8")


def annotate_commit_message(message_file: Path, root: Path) -> bool:
    """Consume the pending auto-fix marker and annotate ``message_file``.

    Returns True when the message was rewritten.
    """
    marker = marker_path(root)
    if not marker.exists():
        return False
    marker.unlink(missing_ok=True)
    original = message_file.read_text(encoding="utf-8")
    updated = append_autofix_message(original)
    if updated == original:
        return False
    message_file.write_text(updated, encoding="utf-8")
    return True


__all__ = [
    "AUTOFIX_SUFFIX",
    "annotate_commit_message",
    "append_autofix_message",
    "mark_autofix",
    "marker_path",
]
