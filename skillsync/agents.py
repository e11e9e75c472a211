"""Registry of supported coding tools and their installation locations."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .models import InstallTargets, UnitKind

DEFAULT_AGENTS = ("claude",)


@dataclass(frozen=True)
class AgentEntry:
    """Install locations for one tool.

    ``skills_dir`` is relative to the project root. ``settings_file`` is
    relative to the tool's project directory and only set for tools that
    read a JSON settings file.
    """

    slug: str
    skills_dir: str
    home: Optional[Path]
    global_skills_dir: Optional[Path]
    settings_file: Optional[str] = None

    @property
    def project_root(self) -> str:
        return self.skills_dir.split("/", 1)[0]


def _table(home: Path, config_home: Path, claude_home: Path, codex_home: Path) -> List[AgentEntry]:
    def dotted(slug: str, folder: str, leaf: str = "skills") -> AgentEntry:
        base = home / folder
        return AgentEntry(slug, f"{folder}/{leaf}", base, base / leaf)

    return [
        AgentEntry("claude", ".claude/skills", claude_home, claude_home / "skills", "settings.json"),
        dotted("cursor", ".cursor"),
        AgentEntry(
            "windsurf",
            ".windsurf/skills",
            home / ".codeium" / "windsurf",
            home / ".codeium" / "windsurf" / "skills",
        ),
        dotted("continue", ".continue"),
        dotted("copilot", ".copilot"),
        AgentEntry("gemini", ".gemini/skills", home / ".gemini", home / ".gemini" / "skills", "settings.json"),
        dotted("augment", ".augment", "rules"),
        dotted("cline", ".cline"),
        AgentEntry("goose", ".goose/skills", config_home / "goose", config_home / "goose" / "skills"),
        dotted("junie", ".junie"),
        dotted("kiro", ".kiro"),
        AgentEntry("opencode", ".opencode/skills", config_home / "opencode", config_home / "opencode" / "skills"),
        dotted("openhands", ".openhands"),
        dotted("roo", ".roo"),
        dotted("trae", ".trae"),
        dotted("kode", ".kode"),
        AgentEntry("qwen-code", ".qwen/skills", home / ".qwen", home / ".qwen" / "skills", "settings.json"),
        AgentEntry("codex", ".codex/skills", codex_home, codex_home / "skills"),
        AgentEntry("amp", ".agents/skills", config_home / "agents", config_home / "agents" / "skills"),
        dotted("kilo", ".kilocode"),
        dotted("pochi", ".pochi"),
        dotted("neovate", ".neovate"),
        dotted("mux", ".mux"),
        dotted("zencoder", ".zencoder"),
        dotted("adal", ".adal"),
        dotted("openclaw", ".openclaw"),
    ]


def _env_path(environ: Mapping[str, str], key: str, default: Path) -> Path:
    value = (environ.get(key) or "").strip()
    return Path(value) if value else default


class AgentRegistry:
    """Read-only lookup table resolved once from the home directory and environment."""

    def __init__(self, entries: Sequence[AgentEntry]) -> None:
        self._entries: Dict[str, AgentEntry] = {entry.slug: entry for entry in entries}

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
    ) -> "AgentRegistry":
        environ = os.environ if environ is None else environ
        home = home or Path.home()
        config_home = _env_path(environ, "XDG_CONFIG_HOME", home / ".config")
        claude_home = _env_path(environ, "CLAUDE_CONFIG_DIR", home / ".claude")
        codex_home = _env_path(environ, "CODEX_HOME", home / ".codex")
        return cls(_table(home, config_home, claude_home, codex_home))

    @property
    def slugs(self) -> List[str]:
        return list(self._entries)

    def get(self, slug: str) -> Optional[AgentEntry]:
        return self._entries.get(slug)

    def detect_installed(self) -> List[str]:
        """Return slugs whose home directory exists on this machine."""
        return [entry.slug for entry in self._entries.values() if entry.home and entry.home.exists()]

    def resolve_targets(
        self,
        agents: Sequence[str],
        kind: UnitKind,
        *,
        global_scope: bool = False,
        cwd: Path | None = None,
        custom_path: Path | str | None = None,
    ) -> InstallTargets:
        """Compute directory and settings-file targets for ``agents``.

        Unknown slugs fall back to ``.<slug>/skills`` for project installs and
        are skipped for global installs. ``custom_path`` replaces the
        directory targets but leaves settings files untouched.
        """
        cwd = cwd or Path.cwd()
        directories: List[Path] = []
        settings_files: List[Path] = []
        for slug in agents:
            skills_dir, settings_file = self._locations(slug, global_scope=global_scope, cwd=cwd)
            if skills_dir is not None:
                directories.append(skills_dir if kind is UnitKind.SKILL else skills_dir.parent / "settings")
            if settings_file is not None:
                settings_files.append(settings_file)

        if custom_path:
            directories = [Path(custom_path)]
        return InstallTargets(directories=directories, settings_files=settings_files)

    def _locations(
        self, slug: str, *, global_scope: bool, cwd: Path
    ) -> Tuple[Optional[Path], Optional[Path]]:
        entry = self._entries.get(slug)
        if entry is None:
            if global_scope:
                return None, None
            return cwd / f".{slug}" / "skills", None

        if global_scope:
            skills_dir = entry.global_skills_dir
            settings_root = entry.home
        else:
            skills_dir = cwd / entry.skills_dir
            settings_root = cwd / entry.project_root

        settings_file = None
        if entry.settings_file and settings_root is not None:
            settings_file = settings_root / entry.settings_file
        return skills_dir, settings_file


__all__ = ["DEFAULT_AGENTS", "AgentEntry", "AgentRegistry"]
