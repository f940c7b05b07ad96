"""Bounded, append-only history of remediation attempts."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from ..logging import get_logger
from ..models import AUDIT_MODES, AuditEntry

MAX_ENTRIES = 500
LOG_DIRNAME = ".docguard"
LOG_FILENAME = "audit-log.json"


class AuditLog:
    """Stores audit entries as one JSON array, keeping only the newest ``max_entries``."""

    def __init__(self, path: Path, *, max_entries: int = MAX_ENTRIES) -> None:
        self.path = path
        self.max_entries = max_entries
        self.logger = get_logger("audit")

    @classmethod
    def for_project(cls, root: Path) -> "AuditLog":
        return cls(root / LOG_DIRNAME / LOG_FILENAME)

    def read(self) -> List[Dict[str, object]]:
        return read_log(self.path)

    def append(self, entry: AuditEntry) -> List[Dict[str, object]]:
        """Append ``entry``, evicting the oldest records beyond the cap, and persist."""
        if entry.mode not in AUDIT_MODES:
            raise ValueError(f"Unknown audit mode '{entry.mode}'")
        entries = self.read()
        entries.append(entry.to_dict())
        if len(entries) > self.max_entries:
            entries = entries[-self.max_entries:]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        return entries

    def record(
        self,
        mode: str,
        *,
        engine: Optional[str] = None,
        outcome: Iterable[Mapping[str, str]] = (),
        timestamp: Optional[str] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            timestamp=timestamp or utc_timestamp(),
            mode=mode,
            engine=engine,
            outcome=[dict(item) for item in outcome],
        )
        self.append(entry)
        self.logger.debug("Recorded %s audit entry in %s", mode, self.path)
        return entry


def read_log(path: Path) -> List[Dict[str, object]]:
    """Return the stored entries; a missing or corrupted file reads as empty."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


__all__ = ["AuditLog", "LOG_DIRNAME", "LOG_FILENAME", "MAX_ENTRIES", "read_log", "utc_timestamp"]
