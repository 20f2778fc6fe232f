"""Configuration loading for specgraph (.specgraph.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .manifest import DEFAULT_MARKER
from .references import DEFAULT_REFERENCE_KEYS

CONFIG_FILENAME = ".specgraph.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class RulesConfig:
    """Rule enablement; ``None`` runs every discovered rule."""

    enabled: Optional[List[str]] = None


@dataclass
class ManifestConfig:
    marker: str = DEFAULT_MARKER


@dataclass
class ReferencesConfig:
    keys: List[str] = field(default_factory=lambda: list(DEFAULT_REFERENCE_KEYS))


@dataclass
class SpecGraphConfig:
    """Represents the settings defined in .specgraph.yml."""

    root: Path
    exclude_paths: List[str] = field(default_factory=list)
    concurrency: int = 1
    report_file: Optional[Path] = None
    docs_base_url: Optional[str] = None
    rules: RulesConfig = field(default_factory=RulesConfig)
    manifest: ManifestConfig = field(default_factory=ManifestConfig)
    references: ReferencesConfig = field(default_factory=ReferencesConfig)


def load_config(config_path: Path) -> SpecGraphConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SpecGraphConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    concurrency = _as_int(data.get("concurrency"))
    if concurrency is None:
        concurrency = 1
    if concurrency < 1:
        raise ConfigError("concurrency must be a positive integer")

    report_file_str = _as_str(data.get("report_file"))
    report_file = root / report_file_str if report_file_str else None

    rules = RulesConfig()
    rules_data = _as_dict(data.get("rules"))
    if "enabled" in rules_data:
        rules.enabled = _as_str_list(rules_data.get("enabled"))

    manifest = ManifestConfig()
    manifest_data = _as_dict(data.get("manifest"))
    marker = _as_str(manifest_data.get("marker"))
    if marker:
        manifest.marker = marker

    references = ReferencesConfig()
    references_data = _as_dict(data.get("references"))
    keys = _as_str_list(references_data.get("keys"))
    if keys:
        references.keys = keys

    return SpecGraphConfig(
        root=root,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        concurrency=concurrency,
        report_file=report_file,
        docs_base_url=_as_str(data.get("docs_base_url")),
        rules=rules,
        manifest=manifest,
        references=references,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


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


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ManifestConfig",
    "ReferencesConfig",
    "RulesConfig",
    "SpecGraphConfig",
    "load_config",
]
