"""Tests for the agent registry and install target resolution."""

from __future__ import annotations

from pathlib import Path

from skillsync.agents import AgentRegistry
from skillsync.models import UnitKind


def _registry(home: Path, **environ: str) -> AgentRegistry:
    return AgentRegistry.from_environment(environ=environ, home=home)


def test_registry_knows_every_supported_tool(tmp_path: Path) -> None:
    registry = _registry(tmp_path)

    assert len(registry.slugs) == 26
    assert registry.slugs[0] == "claude"
    assert {"cursor", "codex", "qwen-code", "openclaw"} <= set(registry.slugs)
    assert registry.get("nope") is None


def test_project_skill_targets(tmp_path: Path) -> None:
    registry = _registry(tmp_path / "home")
    cwd = tmp_path / "project"

    targets = registry.resolve_targets(["claude", "cursor", "amp"], UnitKind.SKILL, cwd=cwd)

    assert targets.directories == [
        cwd / ".claude" / "skills",
        cwd / ".cursor" / "skills",
        cwd / ".agents" / "skills",
    ]
    assert targets.settings_files == [cwd / ".claude" / "settings.json"]


def test_global_targets_honour_environment_overrides(tmp_path: Path) -> None:
    home = tmp_path / "home"
    registry = _registry(
        home,
        CLAUDE_CONFIG_DIR=str(tmp_path / "claude-config"),
        CODEX_HOME=str(tmp_path / "codex"),
        XDG_CONFIG_HOME=str(tmp_path / "xdg"),
    )

    targets = registry.resolve_targets(
        ["claude", "codex", "goose", "windsurf"], UnitKind.SKILL, global_scope=True
    )

    assert targets.directories == [
        tmp_path / "claude-config" / "skills",
        tmp_path / "codex" / "skills",
        tmp_path / "xdg" / "goose" / "skills",
        home / ".codeium" / "windsurf" / "skills",
    ]
    assert targets.settings_files == [tmp_path / "claude-config" / "settings.json"]


def test_settings_targets_use_sibling_settings_directory(tmp_path: Path) -> None:
    registry = _registry(tmp_path / "home")
    cwd = tmp_path / "project"

    targets = registry.resolve_targets(["claude", "gemini", "cursor"], UnitKind.SETTINGS, cwd=cwd)

    assert targets.directories == [
        cwd / ".claude" / "settings",
        cwd / ".gemini" / "settings",
        cwd / ".cursor" / "settings",
    ]
    assert targets.settings_files == [cwd / ".claude" / "settings.json", cwd / ".gemini" / "settings.json"]


def test_unknown_agent_falls_back_for_project_only(tmp_path: Path) -> None:
    registry = _registry(tmp_path / "home")
    cwd = tmp_path / "project"

    project = registry.resolve_targets(["my-tool"], UnitKind.SKILL, cwd=cwd)
    global_ = registry.resolve_targets(["my-tool"], UnitKind.SKILL, global_scope=True, cwd=cwd)

    assert project.directories == [cwd / ".my-tool" / "skills"]
    assert global_.directories == []


def test_custom_path_replaces_directories(tmp_path: Path) -> None:
    registry = _registry(tmp_path / "home")
    cwd = tmp_path / "project"

    targets = registry.resolve_targets(
        ["claude", "cursor"], UnitKind.SKILL, cwd=cwd, custom_path=tmp_path / "vendor"
    )

    assert targets.directories == [tmp_path / "vendor"]
    assert targets.settings_files == [cwd / ".claude" / "settings.json"]


def test_detect_installed(tmp_path: Path) -> None:
    home = tmp_path / "home"
    (home / ".cursor").mkdir(parents=True)
    (home / ".gemini").mkdir()

    assert _registry(home).detect_installed() == ["cursor", "gemini"]
