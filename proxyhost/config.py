"""TOML-based provider and logging configuration.

Loads ~/.proxyhost/defaults.toml (global) and proxyhost.toml (project),
merges them, and resolves named providers into provider configs.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from proxyhost.observability.logging import LogConfig

if TYPE_CHECKING:
    from proxyhost.providers.gcp.config import GCP

    type ProviderConfig = GCP

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".proxyhost" / "defaults.toml"
PROJECT_CONFIG_NAME = "proxyhost.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("providers", {})
    return merged


def _build_provider(name: str, raw: RawConfig) -> ProviderConfig:
    from proxyhost.providers.gcp.config import GCP

    raw = dict(raw)
    match raw.pop("type", None):
        case None:
            raise ValueError(f"Provider '{name}' missing 'type' field")
        case "gcp":
            return GCP(**raw)
        case other:
            raise ValueError(f"Unknown provider type '{other}'. Valid: gcp")


def resolve_provider(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> ProviderConfig:
    config = load_config(project_dir=project_dir, global_path=global_path)

    providers = config["providers"]
    if name not in providers:
        raise KeyError(
            f"Provider '{name}' not found. Available: {', '.join(providers) or 'none'}"
        )
    return _build_provider(name, providers[name])


def resolve_logging(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> LogConfig:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return LogConfig(**config.get("logging", {}))
