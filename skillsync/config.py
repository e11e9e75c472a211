"""Configuration loading for skillsync (.skillsync.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .agents import DEFAULT_AGENTS
from .errors import SyncError
from .git.clone import CLONE_TIMEOUT_SECONDS

CONFIG_FILENAME = ".skillsync.yml"
GLOBAL_DIRNAME = ".skillsync"


class ConfigError(SyncError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class CloneConfig:
    """Settings for remote retrieval."""

    ssh: bool = False
    timeout: float = CLONE_TIMEOUT_SECONDS


@dataclass
class GlobalConfig:
    """Defaults used when a scope lists no agents of its own."""

    default_agents: List[str] = field(default_factory=list)


@dataclass
class SkillSyncConfig:
    """Represents the settings defined in .skillsync.yml."""

    root: Path
    agents: List[str] = field(default_factory=list)
    custom_install_path: Optional[Path] = None
    global_: GlobalConfig = field(default_factory=GlobalConfig)
    clone: CloneConfig = field(default_factory=CloneConfig)

    def effective_agents(self) -> List[str]:
        if self.agents:
            return list(self.agents)
        if self.global_.default_agents:
            return list(self.global_.default_agents)
        return list(DEFAULT_AGENTS)


def global_root(home: Path | None = None) -> Path:
    """Directory holding the home-scoped config and manifests."""
    return (home or Path.home()) / GLOBAL_DIRNAME


def load_config(config_path: Path) -> SkillSyncConfig:
    """Load configuration from a file or from the directory that holds it."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent

    if not config_file.exists():
        return SkillSyncConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    global_data = _as_dict(data.get("global"))
    global_config = GlobalConfig(default_agents=_as_str_list(global_data.get("default_agents")))

    clone_data = _as_dict(data.get("clone"))
    clone = CloneConfig()
    if clone_data:
        ssh = _as_bool(clone_data.get("ssh"))
        timeout = _as_float(clone_data.get("timeout"))
        clone.ssh = bool(ssh) if ssh is not None else clone.ssh
        if timeout is not None:
            if timeout <= 0:
                raise ConfigError("clone.timeout must be a positive number of seconds")
            clone.timeout = timeout

    custom = _as_str(data.get("custom_install_path"))
    custom_path = (root / Path(custom).expanduser()) if custom else None

    return SkillSyncConfig(
        root=root,
        agents=_as_str_list(data.get("agents")),
        custom_install_path=custom_path,
        global_=global_config,
        clone=clone,
    )


def effective_config(
    cwd: Path,
    *,
    global_scope: bool = False,
    home: Path | None = None,
) -> SkillSyncConfig:
    """Project config first, then the home-scoped one, then built-in defaults."""
    global_config = load_config(global_root(home))
    if global_scope:
        return global_config

    project_file = _resolve_config_path(cwd)
    if project_file.exists():
        config = load_config(project_file)
        if not config.global_.default_agents:
            config.global_ = global_config.global_
        return config
    return global_config


def write_config(config: SkillSyncConfig, directory: Path) -> Path:
    """Serialize ``config`` into ``directory/.skillsync.yml``."""
    payload: Dict[str, Any] = {"agents": list(config.agents)}
    if config.custom_install_path is not None:
        payload["custom_install_path"] = str(config.custom_install_path)
    if config.global_.default_agents:
        payload["global"] = {"default_agents": list(config.global_.default_agents)}
    payload["clone"] = {"ssh": config.clone.ssh, "timeout": config.clone.timeout}

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / CONFIG_FILENAME
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir() or config_path.name != CONFIG_FILENAME:
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


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


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
