"""TOML-based configuration.

Loads ``<config dir>/defaults.toml`` (global) and ``overcast.toml``
(project), merges them, and builds a frozen ``Settings``. The config dir is
the nearest ``.overcast`` directory above the working directory, falling
back to ``~/.overcast``.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from overcast.providers.linode.config import Linode

type RawConfig = dict[str, Any]

CONFIG_DIR_NAME = ".overcast"
GLOBAL_CONFIG_NAME = "defaults.toml"
PROJECT_CONFIG_NAME = "overcast.toml"
REGISTRY_FILE_NAME = "clusters.json"
VARIABLES_FILE_NAME = "variables.json"


@dataclass(frozen=True, slots=True)
class PollConfig:
    """Bounds for job and readiness polling.

    Args:
        interval: Seconds between polls.
        timeout: Wall-clock bound for a job wait, in seconds.
        boot_timeout: Wall-clock bound for the readiness wait, in seconds.
        max_attempts: Optional bound on poll rounds for both loops.
        retries: Retries of a transiently failing status query.
        backoff: Base of the exponential backoff between those retries.
    """

    interval: float = 5.0
    timeout: float = 600.0
    boot_timeout: float = 300.0
    max_attempts: int | None = None
    retries: int = 3
    backoff: float = 1.0


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    path: Path
    prune_on_failed_destroy: bool = True


@dataclass(frozen=True, slots=True)
class Settings:
    config_dir: Path
    registry: RegistryConfig
    linode: Linode = field(default_factory=Linode)
    poll: PollConfig = field(default_factory=PollConfig)

    @property
    def variables_path(self) -> Path:
        return self.config_dir / VARIABLES_FILE_NAME

    def resolve_path(self, value: str) -> Path:
        """Key paths are relative to the config dir unless absolute."""
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.config_dir / path


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


def find_config_dir(start: Path | None = None, home: Path | None = None) -> Path:
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / CONFIG_DIR_NAME).is_dir():
            return candidate / CONFIG_DIR_NAME
    return (home or Path.home()) / CONFIG_DIR_NAME


def load_config(
    *,
    config_dir: Path,
    project_dir: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(config_dir / GLOBAL_CONFIG_NAME)
    project_cfg = _read_toml((project_dir or Path.cwd()) / PROJECT_CONFIG_NAME)

    merged = _deep_merge(global_cfg, project_cfg)
    for section in ("linode", "poll", "registry"):
        merged.setdefault(section, {})
    return merged


def load_settings(
    *,
    config_dir: Path | None = None,
    project_dir: Path | None = None,
) -> Settings:
    root = config_dir or find_config_dir(project_dir)
    raw = load_config(config_dir=root, project_dir=project_dir)

    registry_raw = dict(raw["registry"])
    path = Path(registry_raw.pop("path", REGISTRY_FILE_NAME)).expanduser()
    try:
        registry = RegistryConfig(
            path=path if path.is_absolute() else root / path,
            **registry_raw,
        )
        linode = Linode(**raw["linode"])
        poll = PollConfig(**raw["poll"])
    except TypeError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return Settings(config_dir=root, registry=registry, linode=linode, poll=poll)


__all__ = [
    "PollConfig",
    "RegistryConfig",
    "Settings",
    "find_config_dir",
    "load_config",
    "load_settings",
]
