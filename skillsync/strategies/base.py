"""Shared contract and helpers for installation strategies."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Sequence, Tuple

from ..errors import ApplyFailure
from ..logging import get_logger
from ..models import InstallTargets, Strategy

logger = get_logger("strategies")


@dataclass
class ApplyOutcome:
    """Paths written by a strategy and the strategy that actually ran."""

    strategy: Strategy
    paths: List[str] = field(default_factory=list)


class StrategyHandler(ABC):
    """Contract for the copy / merge / replace handlers."""

    strategy: Strategy

    @abstractmethod
    def supports(self, targets: InstallTargets) -> bool:
        """Return True when ``targets`` offers something this handler can write to."""

    @abstractmethod
    def apply(self, source: Path, unit_name: str, targets: InstallTargets) -> List[str]:
        """Install ``source`` as ``unit_name`` and return the written paths."""


def write_each(
    destinations: Sequence[Path],
    write: Callable[[Path], Path],
    *,
    unit_name: str,
) -> List[str]:
    """Run ``write`` for every destination, continuing past individual failures.

    Targets are independent: one failing target does not roll back the ones
    already written. If any failed, :class:`ApplyFailure` is raised at the end
    and carries the successfully written paths.
    """
    written: List[str] = []
    failures: List[Tuple[Path, OSError]] = []
    for destination in destinations:
        try:
            written.append(str(write(destination)))
        except OSError as exc:
            logger.error("Failed to write %s for %s: %s", destination, unit_name, exc)
            failures.append((destination, exc))

    if failures:
        details = "; ".join(f"{path}: {exc}" for path, exc in failures)
        raise ApplyFailure(
            f"Failed to install {unit_name} to {len(failures)} target(s): {details}",
            written,
        )
    return written


def find_json_documents(source: Path) -> List[Tuple[Path, Any]]:
    """Parse the JSON files directly inside ``source`` in lexical filename order.

    Dotfiles are ignored; files that do not parse are skipped with a warning.
    """
    documents: List[Tuple[Path, Any]] = []
    try:
        candidates = sorted(source.iterdir(), key=lambda path: path.name)
    except OSError:
        return documents

    for path in candidates:
        if path.name.startswith(".") or path.suffix != ".json" or not path.is_file():
            continue
        try:
            documents.append((path, json.loads(path.read_text(encoding="utf-8"))))
        except (OSError, ValueError, RecursionError) as exc:
            logger.warning("Skipping %s: not valid JSON (%s)", path.name, exc)
    return documents


def dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_json(payload), encoding="utf-8")
    return path


__all__ = [
    "ApplyOutcome",
    "StrategyHandler",
    "dump_json",
    "find_json_documents",
    "write_each",
    "write_json",
]
