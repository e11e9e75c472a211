"""Core data models shared across skillsync components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional


class SourceKind(str, Enum):
    """Where a unit's content lives."""

    GITHUB = "github"
    GITLAB = "gitlab"
    GIT = "git"
    FILE = "file"


class UnitKind(str, Enum):
    """Installable unit flavours, each identified by its own marker file."""

    SKILL = "skill"
    SETTINGS = "settings"

    @property
    def marker(self) -> str:
        return "SKILL.md" if self is UnitKind.SKILL else "SETTINGS.md"

    @property
    def manifest_filename(self) -> str:
        return "skills.json" if self is UnitKind.SKILL else "settings.json"

    @property
    def label(self) -> str:
        return "skill" if self is UnitKind.SKILL else "settings package"


class Strategy(str, Enum):
    """How a settings unit is applied to its targets."""

    COPY = "copy"
    MERGE = "merge"
    REPLACE = "replace"

    @classmethod
    def parse(cls, value: object) -> "Strategy":
        """Return the strategy named by ``value`` or raise ValueError."""
        if isinstance(value, Strategy):
            return value
        if isinstance(value, str):
            normalised = value.strip().lower()
            for member in cls:
                if member.value == normalised:
                    return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown strategy {value!r}; expected one of: {choices}")


@dataclass(frozen=True)
class SourceReference:
    """Structured form of a locator string such as ``github:owner/repo#v1``."""

    kind: SourceKind
    url: str
    ref: Optional[str] = None
    subpath: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return self.kind is not SourceKind.FILE


@dataclass(frozen=True)
class UnitMetadata:
    """Fields parsed from a marker header; unknown keys are kept in ``extra``."""

    name: str
    description: str
    strategy: Optional[Strategy] = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DiscoveredUnit:
    """A directory holding a valid marker file."""

    name: str
    description: str
    path: Path
    kind: UnitKind
    metadata: UnitMetadata


@dataclass(frozen=True)
class UnitSummary:
    """Discovery result handed to callers that only want to list units."""

    name: str
    description: str
    repo_path: str
    strategy: Optional[Strategy] = None


@dataclass(frozen=True)
class ManifestEntry:
    """One unit recorded in ``skills.json`` or ``settings.json``."""

    source: str
    path: Optional[str] = None
    strategy: Optional[Strategy] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {"source": self.source}
        if self.path:
            payload["path"] = self.path
        if self.strategy is not None:
            payload["strategy"] = self.strategy.value
        return payload


@dataclass(frozen=True)
class DirectoryDiff:
    """File-level differences between an installed unit and its upstream copy."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return not (self.added or self.removed or self.changed)


@dataclass(frozen=True)
class InstallTargets:
    """Resolved destinations for one install: directories and settings files."""

    directories: List[Path] = field(default_factory=list)
    settings_files: List[Path] = field(default_factory=list)


@dataclass
class InstallResult:
    """Outcome of installing a single unit."""

    success: bool
    unit_name: str
    installed_paths: List[str] = field(default_factory=list)
    strategy_used: Optional[Strategy] = None
    error: Optional[str] = None


class UpdateStatus(str, Enum):
    INSTALLED = "installed"
    UPDATED = "updated"
    UP_TO_DATE = "up-to-date"
    FAILED = "failed"


@dataclass
class UpdateOutcome:
    """Outcome of a change-aware update of one unit."""

    unit_name: str
    status: UpdateStatus
    result: Optional[InstallResult] = None
    diff: Optional[DirectoryDiff] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is not UpdateStatus.FAILED


__all__ = [
    "DirectoryDiff",
    "DiscoveredUnit",
    "InstallResult",
    "InstallTargets",
    "ManifestEntry",
    "SourceKind",
    "SourceReference",
    "Strategy",
    "UnitKind",
    "UnitMetadata",
    "UnitSummary",
    "UpdateOutcome",
    "UpdateStatus",
]
