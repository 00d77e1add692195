from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .settings import Settings

CONFIG_CANDIDATES = ("config.yaml", "config/config.yaml")


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    config_path: Path | None


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge `override` into a copy of `base`; nested dicts merge, anything else replaces."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def find_config(project_root: Path) -> Path | None:
    for name in CONFIG_CANDIDATES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


def read_yaml_config(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level of the config must be a mapping, got {type(raw).__name__}")
    return raw


def load_settings(*, project_root: Path, config_path: Path | None, cli_overrides: dict[str, Any]) -> LoadedSettings:
    """Settings from YAML (explicit path, or auto-detected under `project_root`) with CLI overrides on top.

    An explicit `config_path` must exist; auto-detection silently falls back to defaults.
    """

    if config_path is not None:
        config_path = config_path.expanduser()
        if not config_path.is_file():
            raise FileNotFoundError(f"config file not found: {config_path}")
        resolved: Path | None = config_path
    else:
        resolved = find_config(project_root)

    file_data = read_yaml_config(resolved) if resolved is not None else {}
    settings = Settings.model_validate(deep_merge(file_data, cli_overrides))
    return LoadedSettings(settings=settings, config_path=resolved)
