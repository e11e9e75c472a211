"""Synchronization pipeline: parse, retrieve, discover, diff and apply."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .discovery import discover_units
from .errors import ApplyFailure, SyncError, UnitNotFound
from .fingerprint import diff_hashes, fingerprint
from .git.clone import Retriever
from .logging import get_logger
from .manifest import Manifest
from .models import (
    DirectoryDiff,
    DiscoveredUnit,
    InstallResult,
    InstallTargets,
    ManifestEntry,
    SourceReference,
    Strategy,
    UnitKind,
    UnitSummary,
    UpdateOutcome,
    UpdateStatus,
)
from .sources import parse_source as _parse_source
from .strategies import apply_strategy


@dataclass(frozen=True)
class InstallOptions:
    """Per-call install settings resolved by the caller."""

    targets: InstallTargets
    ssh: bool = False
    strategy: Optional[Strategy] = None


Source = Union[SourceReference, str]
OptionsFactory = Callable[[str, ManifestEntry], InstallOptions]


@dataclass
class BatchSummary:
    """Per-unit outcomes of a manifest-wide install or update run."""

    outcomes: List[UpdateOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)

    @property
    def up_to_date(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is UpdateStatus.UP_TO_DATE)

    @property
    def ok(self) -> bool:
        return self.failed == 0


class Orchestrator:
    """Coordinates retrieval, discovery and installation of units."""

    def __init__(self, retriever: Retriever | None = None) -> None:
        self.retriever = retriever or Retriever()
        self.logger = get_logger("orchestrator")

    def parse_source(self, locator: str) -> SourceReference:
        return _parse_source(locator)

    def resolve_source(self, source: Source) -> SourceReference:
        """Accept an already parsed reference or parse a locator string."""
        if isinstance(source, SourceReference):
            return source
        return self.parse_source(source)

    def install_unit(
        self,
        source: Source,
        name: str,
        *,
        kind: UnitKind = UnitKind.SKILL,
        options: InstallOptions,
    ) -> InstallResult:
        """Install the unit called ``name`` from ``source`` into every target.

        ``source`` is a locator string or a parsed :class:`SourceReference`.
        Failures of any stage are reported in the returned result; nothing is
        raised.
        """
        self.logger.info("Installing %s %s from %s", kind.label, name, source)
        try:
            reference = self.resolve_source(source)
            with self.retriever.checkout(reference, use_ssh=options.ssh) as tree:
                unit = self._select_unit(tree, reference, name, kind)
                return self._apply(unit, name, options)
        except ApplyFailure as exc:
            self.logger.error("Failed to install %s: %s", name, exc)
            return InstallResult(success=False, unit_name=name, installed_paths=exc.written, error=str(exc))
        except (SyncError, OSError) as exc:
            self.logger.error("Failed to install %s: %s", name, exc)
            return InstallResult(success=False, unit_name=name, error=str(exc))
        except Exception as exc:
            self.logger.exception("Unexpected error while installing %s", name)
            return InstallResult(success=False, unit_name=name, error=f"{type(exc).__name__}: {exc}")

    def check_for_update(
        self,
        source: Source,
        name: str,
        *,
        kind: UnitKind = UnitKind.SKILL,
        options: InstallOptions,
    ) -> Optional[DirectoryDiff]:
        """Compare the installed copy of ``name`` with upstream without writing.

        Returns None when the unit is not installed or cannot be found
        upstream. Parse and retrieval errors propagate.
        """
        installed = self._installed_path(name, options.targets)
        if installed is None:
            return None

        reference = self.resolve_source(source)
        with self.retriever.checkout(reference, use_ssh=options.ssh) as tree:
            try:
                unit = self._select_unit(tree, reference, name, kind)
            except UnitNotFound as exc:
                self.logger.debug("%s", exc)
                return None
            return diff_hashes(fingerprint(installed), fingerprint(unit.path))

    def update_unit(
        self,
        source: Source,
        name: str,
        *,
        kind: UnitKind = UnitKind.SKILL,
        options: InstallOptions,
    ) -> UpdateOutcome:
        """Install, re-install or skip ``name`` depending on what changed upstream.

        The source is retrieved once and used both for the comparison and for
        the install.
        """
        installed = self._installed_path(name, options.targets)
        try:
            reference = self.resolve_source(source)
            with self.retriever.checkout(reference, use_ssh=options.ssh) as tree:
                unit = self._select_unit(tree, reference, name, kind)
                if installed is None:
                    result = self._apply(unit, name, options)
                    return UpdateOutcome(name, UpdateStatus.INSTALLED, result=result)

                diff = diff_hashes(fingerprint(installed), fingerprint(unit.path))
                if diff.up_to_date:
                    self.logger.info("%s is up to date", name)
                    return UpdateOutcome(name, UpdateStatus.UP_TO_DATE, diff=diff)

                self.logger.info(
                    "%s changed upstream (%d added, %d removed, %d changed)",
                    name,
                    len(diff.added),
                    len(diff.removed),
                    len(diff.changed),
                )
                result = self._apply(unit, name, options)
                return UpdateOutcome(name, UpdateStatus.UPDATED, result=result, diff=diff)
        except ApplyFailure as exc:
            self.logger.error("Failed to update %s: %s", name, exc)
            result = InstallResult(success=False, unit_name=name, installed_paths=exc.written, error=str(exc))
            return UpdateOutcome(name, UpdateStatus.FAILED, result=result, error=str(exc))
        except (SyncError, OSError) as exc:
            self.logger.error("Failed to update %s: %s", name, exc)
            return UpdateOutcome(name, UpdateStatus.FAILED, error=str(exc))
        except Exception as exc:
            self.logger.exception("Unexpected error while updating %s", name)
            return UpdateOutcome(name, UpdateStatus.FAILED, error=f"{type(exc).__name__}: {exc}")

    def discover_from_source(
        self,
        source: Source,
        *,
        kind: UnitKind = UnitKind.SKILL,
        ssh: bool = False,
    ) -> List[UnitSummary]:
        """List the units available in ``source`` without installing anything."""
        reference = self.resolve_source(source)
        with self.retriever.checkout(reference, use_ssh=ssh) as tree:
            root = Path(os.path.realpath(tree))
            summaries = []
            for unit in discover_units(root, reference.subpath, kind=kind):
                relative = unit.path.relative_to(root).as_posix()
                summaries.append(
                    UnitSummary(
                        name=unit.name,
                        description=unit.description,
                        repo_path="" if relative == "." else relative,
                        strategy=unit.metadata.strategy,
                    )
                )
            return summaries

    def install_manifest(self, manifest: Manifest, *, options_for: OptionsFactory) -> BatchSummary:
        """Install every entry of ``manifest``, user-scoped entries included."""
        summary = BatchSummary()
        for name, entry in _all_entries(manifest):
            result = self.install_unit(entry.source, name, kind=manifest.kind, options=options_for(name, entry))
            status = UpdateStatus.INSTALLED if result.success else UpdateStatus.FAILED
            summary.outcomes.append(UpdateOutcome(name, status, result=result, error=result.error))
        return summary

    def update_manifest(self, manifest: Manifest, *, options_for: OptionsFactory) -> BatchSummary:
        """Update the managed entries of ``manifest``; user-scoped entries are left alone."""
        summary = BatchSummary()
        for name in manifest.user_entries:
            self.logger.debug("Skipping user entry %s", name)
        for name, entry in manifest.entries.items():
            summary.outcomes.append(
                self.update_unit(entry.source, name, kind=manifest.kind, options=options_for(name, entry))
            )
        return summary

    # ------------------------------------------------------------------
    # Helpers

    def _select_unit(
        self, tree: Path, reference: SourceReference, name: str, kind: UnitKind
    ) -> DiscoveredUnit:
        units = discover_units(tree, reference.subpath, kind=kind)
        return select_unit(units, name, reference=reference, kind=kind)

    def _apply(self, unit: DiscoveredUnit, name: str, options: InstallOptions) -> InstallResult:
        if unit.kind is UnitKind.SKILL:
            outcome = apply_strategy(unit.path, name, Strategy.COPY, options.targets)
            strategy_used = None
        else:
            strategy = options.strategy or unit.metadata.strategy or Strategy.COPY
            outcome = apply_strategy(unit.path, name, strategy, options.targets)
            strategy_used = outcome.strategy

        self.logger.info("Installed %s to %d location(s)", name, len(outcome.paths))
        return InstallResult(
            success=True,
            unit_name=name,
            installed_paths=outcome.paths,
            strategy_used=strategy_used,
        )

    @staticmethod
    def _installed_path(name: str, targets: InstallTargets) -> Optional[Path]:
        if not targets.directories:
            return None
        candidate = targets.directories[0] / name
        return candidate if candidate.exists() else None


def select_unit(
    units: Sequence[DiscoveredUnit],
    name: str,
    *,
    reference: SourceReference,
    kind: UnitKind = UnitKind.SKILL,
) -> DiscoveredUnit:
    """Pick ``name`` from ``units``; a lone unit is accepted under any name."""
    for unit in units:
        if unit.name == name:
            return unit
    if len(units) == 1:
        return units[0]

    location = reference.url + (f"/{reference.subpath}" if reference.subpath else "")
    names = [unit.name for unit in units]
    if names:
        found = "Found: " + ", ".join(f'"{item}"' for item in names)
    else:
        found = f"No {kind.marker} files discovered."
    raise UnitNotFound(f'{kind.label.capitalize()} "{name}" not found in {location}. {found}', names)


def _all_entries(manifest: Manifest):
    yield from manifest.entries.items()
    yield from manifest.user_entries.items()


__all__ = ["BatchSummary", "InstallOptions", "Orchestrator", "Source", "select_unit"]
