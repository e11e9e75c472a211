"""Verbatim directory copy, the default strategy and the only one for skills."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import List

from ..fingerprint import EXCLUDED_DIRS
from ..models import InstallTargets, Strategy
from .base import StrategyHandler, write_each


def _remove_existing(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


class CopyStrategy(StrategyHandler):
    """Replace ``<target>/<unit_name>`` with a fresh copy of the unit directory."""

    strategy = Strategy.COPY

    def supports(self, targets: InstallTargets) -> bool:
        return bool(targets.directories)

    def apply(self, source: Path, unit_name: str, targets: InstallTargets) -> List[str]:
        ignore = shutil.ignore_patterns(*EXCLUDED_DIRS)

        def _copy(directory: Path) -> Path:
            destination = directory / unit_name
            directory.mkdir(parents=True, exist_ok=True)
            _remove_existing(destination)
            shutil.copytree(source, destination, symlinks=True, ignore=ignore)
            return destination

        return write_each(targets.directories, _copy, unit_name=unit_name)
