"""API key resolution from the environment or a project .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class ResolvedKey:
    """An API key and where it was found."""

    key: Optional[str]
    source: str


def parse_env_file(path: Path, key_name: str) -> Optional[str]:
    """Return ``key_name`` from a KEY=VALUE file, ignoring comments and quotes."""
    try:
        content = path.read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError):
        return None
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        if key == key_name:
            return value
    return None


def resolve_api_key(
    env_name: str,
    project_root: Path,
    *,
    environ: Mapping[str, str] | None = None,
) -> ResolvedKey:
    """Look up ``env_name`` in the live environment first, then ``<root>/.env``."""
    env = os.environ if environ is None else environ
    value = env.get(env_name)
    if value:
        return ResolvedKey(key=value, source="environment")

    value = parse_env_file(project_root / ".env", env_name)
    if value:
        return ResolvedKey(key=value, source=".env file")

    return ResolvedKey(key=None, source="not found")


__all__ = ["ResolvedKey", "parse_env_file", "resolve_api_key"]
