"""Deep JSON merge of a settings package into each tool's settings file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

from ..models import InstallTargets, Strategy
from .base import StrategyHandler, find_json_documents, logger, write_each, write_json


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``source`` into a copy of ``target``.

    Arrays are concatenated and de-duplicated, objects merge key by key and
    every other value is taken from ``source``.
    """
    result = dict(target)
    for key, source_value in source.items():
        target_value = result.get(key)
        if isinstance(source_value, list) and isinstance(target_value, list):
            result[key] = _merge_lists(target_value, source_value)
        elif isinstance(source_value, dict) and isinstance(target_value, dict):
            result[key] = deep_merge(target_value, source_value)
        else:
            result[key] = source_value
    return result


def _merge_lists(existing: List[Any], incoming: List[Any]) -> List[Any]:
    seen = set()
    merged: List[Any] = []
    for item in [*existing, *incoming]:
        key = _identity(item)
        if key in seen:
            continue
        seen.add(key)
        merged.append(item)
    return merged


def _identity(item: Any) -> Any:
    # Containers compare structurally. Numbers compare by value (1 == 1.0) but
    # booleans stay distinct from 1 and 0.
    if isinstance(item, (dict, list)):
        return ("json", json.dumps(item, sort_keys=True))
    if isinstance(item, (int, float)) and not isinstance(item, bool):
        return ("number", item)
    return (type(item).__name__, item)


def read_json_object(path: Path) -> Dict[str, Any]:
    """Load a settings file, treating absent, unparseable or non-object content as ``{}``."""
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, RecursionError):
        return {}
    return loaded if isinstance(loaded, dict) else {}


class MergeStrategy(StrategyHandler):
    strategy = Strategy.MERGE

    def supports(self, targets: InstallTargets) -> bool:
        return bool(targets.settings_files)

    def apply(self, source: Path, unit_name: str, targets: InstallTargets) -> List[str]:
        documents = []
        for path, payload in find_json_documents(source):
            if not isinstance(payload, dict):
                logger.warning("Skipping %s: merge requires a JSON object at the top level", path.name)
                continue
            documents.append(payload)

        def _merge(settings_file: Path) -> Path:
            merged = read_json_object(settings_file)
            for payload in documents:
                merged = deep_merge(merged, payload)
            return write_json(settings_file, merged)

        if not documents:
            logger.warning("%s contains no JSON documents to merge", unit_name)
            return []
        return write_each(targets.settings_files, _merge, unit_name=unit_name)
