"""Wholesale overwrite of each tool's settings file."""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..models import InstallTargets, Strategy
from .base import StrategyHandler, find_json_documents, logger, write_each, write_json


class ReplaceStrategy(StrategyHandler):
    """Write the package's JSON over each settings file.

    With several JSON files in the package they are written in lexical order,
    so the last one wins.
    """

    strategy = Strategy.REPLACE

    def supports(self, targets: InstallTargets) -> bool:
        return bool(targets.settings_files)

    def apply(self, source: Path, unit_name: str, targets: InstallTargets) -> List[str]:
        documents = find_json_documents(source)
        if not documents:
            logger.warning("%s contains no JSON documents to write", unit_name)
            return []
        if len(documents) > 1:
            logger.warning(
                "%s has %d JSON files; %s overwrites the others",
                unit_name,
                len(documents),
                documents[-1][0].name,
            )

        def _replace(settings_file: Path) -> Path:
            for _, payload in documents:
                write_json(settings_file, payload)
            return settings_file

        return write_each(targets.settings_files, _replace, unit_name=unit_name)
