"""Discovery of installable units (skills and settings packages) in a tree."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import frontmatter
import yaml

from .logging import get_logger
from .models import DiscoveredUnit, Strategy, UnitKind, UnitMetadata

MAX_DEPTH = 3

_FRONTMATTER = re.compile(r"\A-{3,}[ \t]*\n(.*?)\n-{3,}[ \t]*(?:\n|\Z)", re.DOTALL)
_KNOWN_KEYS = ("name", "description", "strategy")

logger = get_logger("discovery")


def discover_units(
    root: Path | str,
    subpath: Optional[str] = None,
    *,
    kind: UnitKind = UnitKind.SKILL,
) -> List[DiscoveredUnit]:
    """Return every unit of ``kind`` found below ``root`` (optionally ``root/subpath``)."""
    search_root = Path(root) / subpath if subpath else Path(root)
    units: List[DiscoveredUnit] = []
    for marker in _find_markers(search_root, kind.marker.lower()):
        unit = parse_marker(marker, kind)
        if unit is not None:
            units.append(unit)
    logger.debug("Discovered %d %s unit(s) under %s", len(units), kind.value, search_root)
    return units


def parse_marker(path: Path, kind: UnitKind) -> Optional[DiscoveredUnit]:
    """Parse a marker file, returning None when it does not describe a valid unit."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Skipping unreadable marker %s: %s", path, exc)
        return None

    fields = _parse_header(content)
    if not _has_identity(fields):
        fallback = _extract_fields(content, kind)
        if _has_identity(fallback):
            fields = fallback

    if not _has_identity(fields):
        logger.debug("Skipping %s: header lacks name or description", path)
        return None

    metadata = _build_metadata(fields, kind, path)
    return DiscoveredUnit(
        name=metadata.name,
        description=metadata.description,
        path=path.parent.resolve(),
        kind=kind,
        metadata=metadata,
    )


def _find_markers(directory: Path, marker: str, depth: int = 0) -> Iterator[Path]:
    if depth > MAX_DEPTH:
        return
    try:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except OSError:
        return

    for entry in entries:
        if entry.name.startswith((".", "_")):
            continue
        if entry.is_dir():
            yield from _find_markers(Path(entry.path), marker, depth + 1)
        elif entry.name.lower() == marker:
            yield Path(entry.path)


def _header_block(content: str) -> Optional[str]:
    text = content.replace("\r\n", "\n")
    match = _FRONTMATTER.match(text)
    return match.group(1) if match else None


def _parse_header(content: str) -> Dict[str, Any]:
    try:
        post = frontmatter.loads(content)
    except (yaml.YAMLError, ValueError, RecursionError) as exc:
        logger.debug("Marker header is not valid YAML: %s", type(exc).__name__)
        return {}
    return dict(post.metadata) if isinstance(post.metadata, dict) else {}


def _extract_fields(content: str, kind: UnitKind) -> Dict[str, Any]:
    """Line-based extraction for headers that YAML cannot parse."""
    block = _header_block(content)
    if block is None:
        return {}
    keys = _KNOWN_KEYS if kind is UnitKind.SETTINGS else _KNOWN_KEYS[:2]
    result: Dict[str, Any] = {}
    for key in keys:
        match = re.search(rf"^{key}:\s*(.+)$", block, re.MULTILINE)
        if match:
            result[key] = match.group(1).strip()
    return result


def _has_identity(fields: Dict[str, Any]) -> bool:
    return bool(_as_text(fields.get("name"))) and bool(_as_text(fields.get("description")))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _build_metadata(fields: Dict[str, Any], kind: UnitKind, path: Path) -> UnitMetadata:
    strategy: Optional[Strategy] = None
    raw_strategy = fields.get("strategy")
    if kind is UnitKind.SETTINGS and raw_strategy is not None:
        try:
            strategy = Strategy.parse(raw_strategy)
        except ValueError:
            logger.warning("Ignoring unknown strategy %r in %s", raw_strategy, path)

    known = _KNOWN_KEYS if kind is UnitKind.SETTINGS else _KNOWN_KEYS[:2]
    extra = {str(key): value for key, value in fields.items() if key not in known}
    return UnitMetadata(
        name=_as_text(fields.get("name")),
        description=_as_text(fields.get("description")),
        strategy=strategy,
        extra=extra,
    )


__all__ = ["MAX_DEPTH", "discover_units", "parse_marker"]
