"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillsync.config import (
    ConfigError,
    SkillSyncConfig,
    effective_config,
    global_root,
    load_config,
    write_config,
)


def test_load_config_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.agents == []
    assert config.custom_install_path is None
    assert config.clone.ssh is False
    assert config.clone.timeout == 60.0
    assert config.effective_agents() == ["claude"]


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    (tmp_path / ".skillsync.yml").write_text(
        """
agents: [claude, cursor]
custom_install_path: vendor/skills
global:
  default_agents: gemini
clone:
  ssh: "yes"
  timeout: 120
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path / ".skillsync.yml")

    assert config.agents == ["claude", "cursor"]
    assert config.custom_install_path == tmp_path.resolve() / "vendor" / "skills"
    assert config.global_.default_agents == ["gemini"]
    assert config.clone.ssh is True
    assert config.clone.timeout == 120.0


def test_effective_agents_fall_back_to_global_defaults(tmp_path: Path) -> None:
    config = SkillSyncConfig(root=tmp_path)
    config.global_.default_agents = ["codex"]

    assert config.effective_agents() == ["codex"]


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / ".skillsync.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".skillsync.yml").write_text("agents: [claude\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_load_config_rejects_non_positive_timeout(tmp_path: Path) -> None:
    (tmp_path / ".skillsync.yml").write_text("clone:\n  timeout: 0\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="clone.timeout"):
        load_config(tmp_path)


def test_effective_config_prefers_project_then_global(tmp_path: Path) -> None:
    home = tmp_path / "home"
    project = tmp_path / "project"
    project.mkdir()
    global_dir = global_root(home)
    global_dir.mkdir(parents=True)
    (global_dir / ".skillsync.yml").write_text(
        "agents: [cursor]\nglobal:\n  default_agents: [cursor]\n", encoding="utf-8"
    )

    assert effective_config(project, home=home).agents == ["cursor"]
    assert effective_config(project, global_scope=True, home=home).root == global_dir.resolve()

    (project / ".skillsync.yml").write_text("agents: []\n", encoding="utf-8")
    config = effective_config(project, home=home)

    assert config.root == project.resolve()
    assert config.effective_agents() == ["cursor"]


def test_write_config_round_trips(tmp_path: Path) -> None:
    config = SkillSyncConfig(root=tmp_path, agents=["claude", "gemini"])
    config.clone.ssh = True

    path = write_config(config, tmp_path)
    loaded = load_config(path)

    assert path == tmp_path / ".skillsync.yml"
    assert loaded.agents == ["claude", "gemini"]
    assert loaded.clone.ssh is True
