"""Configuration loading for docguard (.docguard.yml)."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .models import PATTERN_KINDS, Category
from .rules import RuleError, compile_rules

CONFIG_FILENAME = ".docguard.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file is missing or cannot be used."""


ENGINE_ALIASES: Dict[str, str] = {
    "subprocess": "subprocess",
    "cli": "subprocess",
    "claude-code": "subprocess",
    "remote": "remote",
    "api": "remote",
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "project_name": "My Project",
    "tech_stack": {
        "framework": "Next.js 14 (App Router)",
        "language": "TypeScript",
    },
    "docs_dir": "docs/",
    "generated_dir": "docs/_generated/",
    "architecture_file": "docs/ARCHITECTURE.md",
    "agent_config_file": ".cursorrules",
    "additional_agent_configs": [],
    "templates_dir": None,
    "scan_paths": {
        "api_routes": "src/app/api/",
        "page_routes": "src/app/",
        "prisma_schema": None,
        "env_file": ".env.example",
        "source_dir": "src/",
    },
    "auto_fix": {
        "generators": True,
        "narrative": {
            "enabled": True,
            "engine": "subprocess",
            "fallback_engine": None,
            "executable": "claude",
            "executable_args": ["-p", "-"],
            "narrative_triggers": ["api-routes", "prisma", "env"],
            "additional_narrative_targets": ["README.md"],
            "model": "claude-sonnet-4-20250514",
            "api_key_env": "ANTHROPIC_API_KEY",
            "base_url": "https://api.anthropic.com",
            "max_tokens": 32000,
            "timeout": 120,
            "max_files": 15,
            "max_file_size": 50 * 1024,
            "max_listed_files": 15,
        },
    },
    "categories": [
        {
            "id": "env",
            "name": "Environment Variables",
            "emoji": "🔑",
            "pattern": ".env.example",
            "pattern_kind": "exact",
            "doc_target": "Environment Variables section",
            "generator_command": "npm run gen:env",
        },
        {
            "id": "api-routes",
            "name": "API Routes",
            "emoji": "📡",
            "pattern": r"^src/app/api/.+/route\.ts$",
            "pattern_kind": "regex",
            "doc_target": "API Routes section",
            "generator_command": "npm run gen:api-routes",
        },
        {
            "id": "page-routes",
            "name": "Page Routes",
            "emoji": "📄",
            "pattern": r"^src/app/.+/page\.tsx$",
            "pattern_kind": "regex",
            "doc_target": "Page Routes section",
            "generator_command": None,
        },
    ],
}


@dataclass(frozen=True)
class NarrativeConfig:
    """Engine selection and limits for generative doc updates."""

    enabled: bool = True
    engine: str = "subprocess"
    fallback_engine: Optional[str] = None
    executable: str = "claude"
    executable_args: List[str] = field(default_factory=lambda: ["-p", "-"])
    narrative_triggers: List[str] = field(default_factory=list)
    additional_narrative_targets: List[str] = field(default_factory=list)
    model: str = "claude-sonnet-4-20250514"
    api_key_env: str = "ANTHROPIC_API_KEY"
    base_url: str = "https://api.anthropic.com"
    max_tokens: int = 32000
    timeout: float = 120.0
    max_files: int = 15
    max_file_size: int = 50 * 1024
    max_listed_files: int = 15


@dataclass(frozen=True)
class AutoFixConfig:
    """Automatic remediation switches."""

    generators: bool = True
    narrative: NarrativeConfig = field(default_factory=NarrativeConfig)


@dataclass(frozen=True)
class DocGuardConfig:
    """Represents the settings defined in .docguard.yml merged over the defaults."""

    root: Path
    project_name: str = "My Project"
    framework: str = "unknown framework"
    language: Optional[str] = None
    docs_dir: str = "docs/"
    generated_dir: str = "docs/_generated/"
    architecture_file: str = "docs/ARCHITECTURE.md"
    agent_config_file: str = ".cursorrules"
    additional_agent_configs: List[str] = field(default_factory=list)
    templates_dir: Optional[Path] = None
    scan_paths: Dict[str, str] = field(default_factory=dict)
    categories: List[Category] = field(default_factory=list)
    auto_fix: AutoFixConfig = field(default_factory=AutoFixConfig)
    config_path: Optional[Path] = None

    @property
    def narrative_targets(self) -> List[str]:
        """Architecture file first, then the extra narrative targets, deduplicated."""
        targets: List[str] = []
        for target in [self.architecture_file, *self.auto_fix.narrative.additional_narrative_targets]:
            if target and target not in targets:
                targets.append(target)
        return targets

    @property
    def agent_files(self) -> List[str]:
        files = [self.agent_config_file] if self.agent_config_file else []
        files.extend(path for path in self.additional_agent_configs if path not in files)
        return files

    def category(self, category_id: str) -> Optional[Category]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


def load_config(config_path: Path) -> DocGuardConfig:
    """Load configuration from disk, merged over DEFAULT_CONFIG."""
    config_file = _resolve_config_path(Path(config_path))
    if not config_file.exists():
        raise ConfigError(
            f"Config file not found: {config_file}\n"
            f"Create {CONFIG_FILENAME} at the project root (see DEFAULT_CONFIG for the available keys)."
        )
    raw = _read_config(config_file)
    merged = deep_merge(copy.deepcopy(DEFAULT_CONFIG), raw)
    return build_config(merged, root=config_file.parent.resolve(), config_path=config_file)


def build_config(
    data: Mapping[str, Any], *, root: Path, config_path: Path | None = None
) -> DocGuardConfig:
    """Validate a merged mapping and turn it into a DocGuardConfig."""
    tech_stack = _as_dict(data.get("tech_stack"))
    auto_fix_data = _as_dict(data.get("auto_fix"))
    narrative_data = _as_dict(auto_fix_data.get("narrative"))

    categories = _parse_categories(data.get("categories"))
    try:
        compile_rules(categories)
    except RuleError as exc:
        raise ConfigError(f"Invalid category in {CONFIG_FILENAME}: {exc}") from exc

    templates_dir_str = _as_str(data.get("templates_dir"))
    templates_dir = root / templates_dir_str if templates_dir_str else None

    narrative = NarrativeConfig(
        enabled=_as_bool(narrative_data.get("enabled"), default=True),
        engine=_normalise_engine(narrative_data.get("engine"), "engine") or "subprocess",
        fallback_engine=_normalise_engine(narrative_data.get("fallback_engine"), "fallback_engine"),
        executable=_as_str(narrative_data.get("executable")) or "claude",
        executable_args=_as_str_list(narrative_data.get("executable_args")),
        narrative_triggers=_as_str_list(narrative_data.get("narrative_triggers")),
        additional_narrative_targets=_as_str_list(narrative_data.get("additional_narrative_targets")),
        model=_as_str(narrative_data.get("model")) or NarrativeConfig.model,
        api_key_env=_as_str(narrative_data.get("api_key_env")) or NarrativeConfig.api_key_env,
        base_url=_as_str(narrative_data.get("base_url")) or NarrativeConfig.base_url,
        max_tokens=_positive_int(narrative_data.get("max_tokens"), "max_tokens", NarrativeConfig.max_tokens),
        timeout=_positive_float(narrative_data.get("timeout"), "timeout", NarrativeConfig.timeout),
        max_files=_positive_int(narrative_data.get("max_files"), "max_files", NarrativeConfig.max_files),
        max_file_size=_positive_int(
            narrative_data.get("max_file_size"), "max_file_size", NarrativeConfig.max_file_size
        ),
        max_listed_files=_positive_int(
            narrative_data.get("max_listed_files"), "max_listed_files", NarrativeConfig.max_listed_files
        ),
    )

    return DocGuardConfig(
        root=root,
        project_name=_as_str(data.get("project_name")) or "project",
        framework=_as_str(tech_stack.get("framework")) or "unknown framework",
        language=_as_str(tech_stack.get("language")),
        docs_dir=_as_str(data.get("docs_dir")) or "docs/",
        generated_dir=_as_str(data.get("generated_dir")) or "docs/_generated/",
        architecture_file=_as_str(data.get("architecture_file")) or "docs/ARCHITECTURE.md",
        agent_config_file=_as_str(data.get("agent_config_file")) or ".cursorrules",
        additional_agent_configs=_as_str_list(data.get("additional_agent_configs")),
        templates_dir=templates_dir,
        scan_paths={
            key: str(value)
            for key, value in _as_dict(data.get("scan_paths")).items()
            if isinstance(value, (str, int, float)) and str(value)
        },
        categories=categories,
        auto_fix=AutoFixConfig(
            generators=_as_bool(auto_fix_data.get("generators"), default=True),
            narrative=narrative,
        ),
        config_path=config_path,
    )


def deep_merge(target: Dict[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``source`` into ``target`` recursively. Lists are replaced, not concatenated."""
    for key, value in source.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _parse_categories(value: Any) -> List[Category]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("`categories` must be a list of mappings")
    categories: List[Category] = []
    for index, raw in enumerate(value):
        if not isinstance(raw, dict):
            raise ConfigError(f"Category #{index + 1} must be a mapping")
        category_id = _as_str(raw.get("id"))
        if not category_id:
            raise ConfigError(f"Category #{index + 1} is missing an `id`")
        kind = (_as_str(raw.get("pattern_kind")) or "exact").strip().lower()
        if kind not in PATTERN_KINDS:
            raise ConfigError(
                f"Category '{category_id}' has unknown pattern_kind '{kind}' "
                f"(expected one of: {', '.join(PATTERN_KINDS)})"
            )
        categories.append(
            Category(
                id=category_id,
                name=_as_str(raw.get("name")) or category_id,
                emoji=_as_str(raw.get("emoji")) or "📦",
                pattern=_as_str(raw.get("pattern")) or "",
                pattern_kind=kind,
                doc_target=_as_str(raw.get("doc_target")) or "Relevant section",
                generator_command=_as_str(raw.get("generator_command")) or None,
            )
        )
    return categories


def _normalise_engine(value: Any, key: str) -> Optional[str]:
    name = _as_str(value)
    if not name:
        return None
    engine = ENGINE_ALIASES.get(name.strip().lower())
    if engine is None:
        raise ConfigError(
            f"Unknown auto_fix.narrative.{key} '{name}' (expected 'subprocess' or 'remote')"
        )
    return engine


def _positive_int(value: Any, key: str, default: int) -> int:
    if value is None:
        return default
    parsed = _as_int(value)
    if parsed is None or parsed <= 0:
        raise ConfigError(f"auto_fix.narrative.{key} must be a positive integer")
    return parsed


def _positive_float(value: Any, key: str, default: float) -> float:
    if value is None:
        return default
    parsed = _as_float(value)
    if parsed is None or parsed <= 0:
        raise ConfigError(f"auto_fix.narrative.{key} must be a positive number")
    return parsed


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AutoFixConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_CONFIG",
    "DocGuardConfig",
    "NarrativeConfig",
    "build_config",
    "deep_merge",
    "load_config",
]
