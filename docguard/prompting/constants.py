"""Shared constants for remediation prompts and engine responses."""

from __future__ import annotations

MODE_NARRATIVE = "narrative"
MODE_SYNC = "sync"
PROMPT_MODES: tuple[str, ...] = (MODE_NARRATIVE, MODE_SYNC)

UPDATED_FILE_TAG = "updated-file"
NO_CHANGES_MARKER = "<no-changes-needed/>"
NO_CHANGES_MARKERS: tuple[str, ...] = ("<no-changes-needed/>", "<no-changes-needed />")

OVERFLOW_TEMPLATE = "(and {count} more files)"

SCAN_PATH_LABELS: dict[str, str] = {
    "api_routes": "API routes",
    "page_routes": "Page routes",
    "prisma_schema": "Prisma schema",
    "env_file": "Env file",
    "source_dir": "Source dir",
}


__all__ = [
    "MODE_NARRATIVE",
    "MODE_SYNC",
    "NO_CHANGES_MARKER",
    "NO_CHANGES_MARKERS",
    "OVERFLOW_TEMPLATE",
    "PROMPT_MODES",
    "SCAN_PATH_LABELS",
    "UPDATED_FILE_TAG",
]
