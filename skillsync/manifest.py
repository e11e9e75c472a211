"""Reading and writing the ``skills.json`` / ``settings.json`` manifests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import InvalidSourceFormat, SyncError
from .models import ManifestEntry, SourceKind, Strategy, UnitKind
from .sources import parse_source

MANIFEST_VERSION = "1.0.0"

# JSON keys for the managed and the user-scoped category of each kind.
_CATEGORY_KEYS = {
    UnitKind.SKILL: ("skills", "userSkills"),
    UnitKind.SETTINGS: ("settings", "userSettings"),
}


class ManifestError(SyncError):
    """Raised when a manifest file is malformed."""


@dataclass
class Manifest:
    """Declarative list of units for one scope (project or global)."""

    name: str
    kind: UnitKind
    version: str = MANIFEST_VERSION
    entries: Dict[str, ManifestEntry] = field(default_factory=dict)
    user_entries: Dict[str, ManifestEntry] = field(default_factory=dict)

    def get(self, name: str) -> Optional[ManifestEntry]:
        return self.entries.get(name) or self.user_entries.get(name)

    def to_dict(self) -> Dict[str, Any]:
        managed_key, user_key = _CATEGORY_KEYS[self.kind]
        payload: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            managed_key: {name: entry.to_dict() for name, entry in self.entries.items()},
        }
        if self.user_entries:
            payload[user_key] = {name: entry.to_dict() for name, entry in self.user_entries.items()}
        return payload


def manifest_path(directory: Path, kind: UnitKind) -> Path:
    return directory / kind.manifest_filename


def read_manifest(directory: Path, kind: UnitKind) -> Optional[Manifest]:
    """Load and validate the manifest in ``directory``; None when it does not exist."""
    path = manifest_path(directory, kind)
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc
    return _from_payload(payload, kind)


def write_manifest(manifest: Manifest, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = manifest_path(directory, manifest.kind)
    path.write_text(json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def add_entry(
    directory: Path,
    kind: UnitKind,
    name: str,
    entry: ManifestEntry,
    *,
    user: bool = False,
) -> Manifest:
    """Record ``entry`` under ``name``, creating the manifest when needed."""
    _validate_entry(entry.to_dict(), name, kind, user=user)
    manifest = read_manifest(directory, kind) or Manifest(name=directory.resolve().name, kind=kind)
    if user:
        manifest.user_entries[name] = entry
    else:
        manifest.entries[name] = entry
    write_manifest(manifest, directory)
    return manifest


def remove_entry(directory: Path, kind: UnitKind, name: str) -> bool:
    """Drop ``name`` from both categories. Returns True when something was removed."""
    manifest = read_manifest(directory, kind)
    if manifest is None:
        return False
    removed = manifest.entries.pop(name, None) is not None
    removed = manifest.user_entries.pop(name, None) is not None or removed
    if removed:
        write_manifest(manifest, directory)
    return removed


# ----------------------------------------------------------------------
# Validation


def _from_payload(payload: Any, kind: UnitKind) -> Manifest:
    filename = kind.manifest_filename
    managed_key, user_key = _CATEGORY_KEYS[kind]
    if not isinstance(payload, dict):
        raise ManifestError(f"Invalid {filename}: must be a JSON object")
    if not isinstance(payload.get("name"), str):
        raise ManifestError(f'Invalid {filename}: "name" must be a string')
    if not isinstance(payload.get("version"), str):
        raise ManifestError(f'Invalid {filename}: "version" must be a string')

    managed = payload.get(managed_key)
    if not isinstance(managed, dict):
        raise ManifestError(f'Invalid {filename}: "{managed_key}" must be an object')
    user = payload.get(user_key, {})
    if not isinstance(user, dict):
        raise ManifestError(f'Invalid {filename}: "{user_key}" must be an object')

    return Manifest(
        name=payload["name"],
        kind=kind,
        version=payload["version"],
        entries={name: _validate_entry(raw, name, kind, user=False) for name, raw in managed.items()},
        user_entries={name: _validate_entry(raw, name, kind, user=True) for name, raw in user.items()},
    )


def _validate_entry(raw: Any, name: str, kind: UnitKind, *, user: bool) -> ManifestEntry:
    filename = kind.manifest_filename
    label = f'{_CATEGORY_KEYS[kind][1 if user else 0]} "{name}"'
    if not isinstance(raw, Mapping):
        raise ManifestError(f"Invalid {filename}: {label} must be an object")

    source = raw.get("source")
    if not isinstance(source, str):
        raise ManifestError(f'Invalid {filename}: {label} must have a "source" string')

    path = raw.get("path")
    if path is not None and not isinstance(path, str):
        raise ManifestError(f"Invalid {filename}: {label} path must be a string if provided")

    strategy = None
    if raw.get("strategy") is not None:
        if kind is not UnitKind.SETTINGS:
            raise ManifestError(f"Invalid {filename}: {label} strategy only applies to settings")
        try:
            strategy = Strategy.parse(raw["strategy"])
        except ValueError as exc:
            raise ManifestError(f"Invalid {filename}: {label} {exc}") from exc

    try:
        reference = parse_source(source)
    except InvalidSourceFormat as exc:
        raise ManifestError(f"Invalid {filename}: {label} has an unusable source. {exc}") from exc
    if user and reference.kind is not SourceKind.FILE:
        raise ManifestError(f"Invalid {filename}: {label} must use the file: prefix")

    return ManifestEntry(source=source, path=path, strategy=strategy)


__all__ = [
    "MANIFEST_VERSION",
    "Manifest",
    "ManifestError",
    "add_entry",
    "manifest_path",
    "read_manifest",
    "remove_entry",
    "write_manifest",
]
