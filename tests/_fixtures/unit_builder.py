"""Helper utilities for laying out skill and settings sources in tests."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any, Mapping, Optional


class UnitBuilder:
    """Writes throwaway source trees containing SKILL.md / SETTINGS.md units."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "source"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries below the source root."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def skill(self, relative: str, name: str, description: str, body: str = "Body.\n") -> Path:
        """Create a skill directory with a SKILL.md header."""
        directory = self.root / relative if relative else self.root
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "SKILL.md").write_text(_marker(name, description) + body, encoding="utf-8")
        return directory

    def settings(
        self,
        relative: str,
        name: str,
        description: str,
        *,
        strategy: Optional[str] = None,
        documents: Optional[Mapping[str, Any]] = None,
    ) -> Path:
        """Create a settings package with a SETTINGS.md header and JSON documents."""
        directory = self.root / relative if relative else self.root
        directory.mkdir(parents=True, exist_ok=True)
        extra = {"strategy": strategy} if strategy else {}
        (directory / "SETTINGS.md").write_text(_marker(name, description, **extra), encoding="utf-8")
        for filename, payload in (documents or {}).items():
            (directory / filename).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return directory

    def path(self) -> Path:
        """Return the source root path."""
        return self.root


def _marker(name: str, description: str, **fields: str) -> str:
    lines = ["---", f"name: {name}", f"description: {description}"]
    lines.extend(f"{key}: {value}" for key, value in fields.items())
    lines.append("---")
    return "\n".join(lines) + "\n"


__all__ = ["UnitBuilder"]
