"""Content fingerprints for unit directories and the diff between two of them."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Dict, Mapping

from .models import DirectoryDiff

HashMap = Dict[str, str]

# Version-control metadata is never part of an installed unit.
EXCLUDED_DIRS = frozenset({".git"})

_CHUNK_SIZE = 1024 * 1024


def hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint(root: Path | str) -> HashMap:
    """Map every regular file below ``root`` (POSIX relative path) to its SHA-256.

    A missing or unreadable root yields an empty map, which is how "not
    installed yet" is represented.
    """
    root_path = Path(root)
    hashes: HashMap = {}
    if not root_path.is_dir():
        return hashes

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(name for name in dirnames if name not in EXCLUDED_DIRS)
        current = Path(dirpath)
        for filename in sorted(filenames):
            path = current / filename
            if not path.is_file():
                continue
            rel_path = path.relative_to(root_path).as_posix()
            hashes[rel_path] = hash_file(path)
    return hashes


def diff_hashes(local: Mapping[str, str], remote: Mapping[str, str]) -> DirectoryDiff:
    """Compare an installed fingerprint against the upstream one."""
    added = [path for path in remote if path not in local]
    removed = [path for path in local if path not in remote]
    changed = [path for path, digest in remote.items() if path in local and local[path] != digest]
    return DirectoryDiff(added=added, removed=removed, changed=changed)


__all__ = ["EXCLUDED_DIRS", "HashMap", "diff_hashes", "fingerprint", "hash_file"]
