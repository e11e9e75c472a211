"""CLI entrypoints for skillsync commands."""

from __future__ import annotations

import argparse
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .agents import DEFAULT_AGENTS, AgentRegistry
from .config import (
    CONFIG_FILENAME,
    SkillSyncConfig,
    effective_config,
    global_root,
    load_config,
    write_config,
)
from .errors import SyncError
from .git.clone import Retriever
from .logging import configure_logging
from .manifest import Manifest, add_entry, read_manifest, remove_entry, write_manifest
from .models import DirectoryDiff, ManifestEntry, SourceKind, Strategy, UnitKind, UpdateStatus
from .orchestrator import BatchSummary, InstallOptions, Orchestrator
from .sources import derive_unit_name, format_source


@dataclass
class _Scope:
    """Everything a command needs to know about where it operates."""

    kind: UnitKind
    global_scope: bool
    cwd: Path
    home: Path
    config: SkillSyncConfig
    registry: AgentRegistry

    @property
    def manifest_dir(self) -> Path:
        return global_root(self.home) if self.global_scope else self.cwd

    @property
    def name(self) -> str:
        return "global" if self.global_scope else "project"

    def options_for(
        self,
        name: str,
        entry: ManifestEntry,
        *,
        ssh: Optional[bool] = None,
    ) -> InstallOptions:
        custom_path: Optional[Path] = None
        if entry.path:
            custom_path = (self.cwd / Path(entry.path).expanduser()).resolve()
        elif self.config.custom_install_path is not None:
            custom_path = self.config.custom_install_path
        targets = self.registry.resolve_targets(
            self.config.effective_agents(),
            self.kind,
            global_scope=self.global_scope,
            cwd=self.cwd,
            custom_path=custom_path,
        )
        return InstallOptions(
            targets=targets,
            ssh=self.config.clone.ssh if ssh is None else ssh,
            strategy=entry.strategy,
        )

    def install_directories(self) -> List[Path]:
        targets = self.registry.resolve_targets(
            self.config.effective_agents(),
            self.kind,
            global_scope=self.global_scope,
            cwd=self.cwd,
            custom_path=self.config.custom_install_path,
        )
        return targets.directories


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
        "default": argparse.SUPPRESS if suppress_default else False,
    }
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_scope_options(parser: argparse.ArgumentParser) -> None:
    _add_verbose_option(parser, suppress_default=True)
    parser.add_argument(
        "--settings",
        action="store_true",
        help="Operate on settings packages (SETTINGS.md) instead of skills.",
    )
    parser.add_argument(
        "-g",
        "--global",
        dest="global_scope",
        action="store_true",
        help="Use the home-scoped manifest and agent directories.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillsync",
        description="Install and keep agent skills and settings packages in sync.",
    )
    _add_verbose_option(parser)
    parser.add_argument("-q", "--quiet", action="store_true", help="Only report warnings and errors.")
    parser.add_argument("--log-file", type=Path, help="Also write a debug log to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    install_parser = subparsers.add_parser(
        "install",
        help="Install every entry recorded in the manifest.",
    )
    _add_scope_options(install_parser)

    update_parser = subparsers.add_parser(
        "update",
        help="Re-install manifest entries whose upstream content changed.",
    )
    _add_scope_options(update_parser)

    add_parser = subparsers.add_parser(
        "add",
        help="Discover units in a source, install them and record them in the manifest.",
    )
    _add_scope_options(add_parser)
    add_parser.add_argument("source", help="Source locator, e.g. github:owner/repo#v1 or file:./my-skill.")
    selection = add_parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--name",
        action="append",
        dest="names",
        help="Unit to install when the source holds several (repeatable).",
    )
    selection.add_argument(
        "--all",
        action="store_true",
        dest="install_all",
        help="Install every unit discovered in the source.",
    )
    add_parser.add_argument(
        "--user",
        action="store_true",
        help="Record a local file: source as a user entry (never auto-updated).",
    )
    add_parser.add_argument("--path", help="Install into this directory instead of the agent directories.")
    add_parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in Strategy],
        help="Settings strategy override (settings packages only).",
    )
    add_parser.add_argument("--ssh", action="store_true", help="Clone over SSH instead of HTTPS.")

    remove_parser = subparsers.add_parser(
        "remove",
        help="Remove units from the manifest and delete their installed copies.",
    )
    _add_scope_options(remove_parser)
    remove_parser.add_argument("names", nargs="+", help="Names of the units to remove.")

    list_parser = subparsers.add_parser("list", help="Show the entries recorded in the manifest.")
    _add_scope_options(list_parser)

    init_parser = subparsers.add_parser(
        "init",
        help="Create a .skillsync.yml and an empty manifest.",
    )
    _add_scope_options(init_parser)
    init_parser.add_argument(
        "--agents",
        nargs="+",
        help="Agents to install into (defaults to the tools detected on this machine).",
    )

    defaults_parser = subparsers.add_parser(
        "defaults",
        help="Show or set the agents used when installing.",
    )
    _add_verbose_option(defaults_parser, suppress_default=True)
    defaults_parser.add_argument(
        "-g",
        "--global",
        dest="global_scope",
        action="store_true",
        help="Edit the home-scoped default agents instead of the project ones.",
    )
    defaults_parser.add_argument("--agents", nargs="+", help="Replace the configured agents with these.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for skillsync commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file)

    try:
        scope = _resolve_scope(args)
        handler = _COMMANDS[args.command]
        ok = handler(args, scope)
    except SyncError as exc:
        parser.exit(1, f"skillsync {args.command} failed: {exc}\nRun with --verbose for more details.\n")
    if not ok:
        parser.exit(1)


def _resolve_scope(args: argparse.Namespace) -> _Scope:
    cwd = Path.cwd()
    home = Path.home()
    global_scope = bool(getattr(args, "global_scope", False))
    return _Scope(
        kind=UnitKind.SETTINGS if getattr(args, "settings", False) else UnitKind.SKILL,
        global_scope=global_scope,
        cwd=cwd,
        home=home,
        config=effective_config(cwd, global_scope=global_scope, home=home),
        registry=AgentRegistry.from_environment(home=home),
    )


def _orchestrator(scope: _Scope) -> Orchestrator:
    return Orchestrator(Retriever(timeout=scope.config.clone.timeout))


def _require_manifest(scope: _Scope) -> Manifest:
    manifest = read_manifest(scope.manifest_dir, scope.kind)
    if manifest is None:
        raise SyncError(
            f"No {scope.kind.manifest_filename} found in {scope.manifest_dir}. Run `skillsync init` first."
        )
    return manifest


# ----------------------------------------------------------------------
# Commands


def _cmd_install(args: argparse.Namespace, scope: _Scope) -> bool:
    manifest = _require_manifest(scope)
    if not manifest.entries and not manifest.user_entries:
        print(f"No entries in {scope.kind.manifest_filename}.")
        return True

    summary = _orchestrator(scope).install_manifest(manifest, options_for=scope.options_for)
    for outcome in summary.outcomes:
        if outcome.success and outcome.result is not None:
            print(f"Installed {outcome.unit_name} -> {_format_paths(outcome.result.installed_paths)}")
        else:
            print(f"Failed {outcome.unit_name}: {outcome.error}")
    _print_summary(summary)
    return summary.ok


def _cmd_update(args: argparse.Namespace, scope: _Scope) -> bool:
    manifest = _require_manifest(scope)
    if not manifest.entries:
        print(f"No updatable entries in {scope.kind.manifest_filename}.")
        return True

    summary = _orchestrator(scope).update_manifest(manifest, options_for=scope.options_for)
    for outcome in summary.outcomes:
        if outcome.status is UpdateStatus.UP_TO_DATE:
            print(f"{outcome.unit_name}: up to date")
        elif outcome.status is UpdateStatus.INSTALLED:
            print(f"{outcome.unit_name}: installed")
        elif outcome.status is UpdateStatus.UPDATED:
            print(f"{outcome.unit_name}: updated")
            if outcome.diff is not None:
                for line in _format_diff(outcome.diff):
                    print(f"  {line}")
        else:
            print(f"{outcome.unit_name}: failed - {outcome.error}")
    _print_summary(summary)
    return summary.ok


def _cmd_add(args: argparse.Namespace, scope: _Scope) -> bool:
    orchestrator = _orchestrator(scope)
    reference = orchestrator.parse_source(args.source)
    strategy = Strategy.parse(args.strategy) if args.strategy else None
    if strategy is not None and scope.kind is not UnitKind.SETTINGS:
        raise SyncError("--strategy only applies to settings packages (use --settings)")
    ssh = bool(args.ssh) or scope.config.clone.ssh

    if args.user and reference.kind is not SourceKind.FILE:
        raise SyncError("--user requires a file: source (e.g. file:./my-skill)")

    if reference.kind is SourceKind.FILE:
        name = args.names[0] if args.names else derive_unit_name(args.source, reference)
        entry = ManifestEntry(source=args.source, path=args.path, strategy=strategy)
        return _install_and_record(orchestrator, scope, name, entry, user=True, ssh=ssh)

    summaries = orchestrator.discover_from_source(args.source, kind=scope.kind, ssh=ssh)
    if not summaries:
        raise SyncError(f"No {scope.kind.marker} files found in {args.source}.")

    if args.names:
        missing = [name for name in args.names if not any(item.name == name for item in summaries)]
        if missing:
            available = ", ".join(item.name for item in summaries)
            raise SyncError(f"Not found in {args.source}: {', '.join(missing)}. Available: {available}")
        picks = [item for item in summaries if item.name in args.names]
    elif args.install_all or len(summaries) == 1:
        picks = list(summaries)
    else:
        listing = "\n".join(f"  {item.name} - {item.description}" for item in summaries)
        raise SyncError(
            f"{args.source} contains {len(summaries)} units; choose with --name or use --all:\n{listing}"
        )

    installed = 0
    for pick in picks:
        if reference.subpath or len(summaries) == 1:
            persisted = args.source
        else:
            persisted = format_source(reference, pick.repo_path)
        entry = ManifestEntry(source=persisted, path=args.path, strategy=strategy)
        install_source = format_source(reference, pick.repo_path) if pick.repo_path else args.source
        if _install_and_record(
            orchestrator, scope, pick.name, entry, user=False, ssh=ssh, install_source=install_source
        ):
            installed += 1
    print(f"{installed}/{len(picks)} {scope.kind.label}(s) added to {scope.kind.manifest_filename}")
    return installed == len(picks)


def _install_and_record(
    orchestrator: Orchestrator,
    scope: _Scope,
    name: str,
    entry: ManifestEntry,
    *,
    user: bool,
    ssh: bool,
    install_source: Optional[str] = None,
) -> bool:
    options = scope.options_for(name, entry, ssh=ssh)
    result = orchestrator.install_unit(install_source or entry.source, name, kind=scope.kind, options=options)
    if not result.success:
        print(f"Failed {name}: {result.error}")
        return False

    add_entry(scope.manifest_dir, scope.kind, name, entry, user=user)
    print(f"Installed {name} -> {_format_paths(result.installed_paths)}")
    if result.strategy_used is not None:
        print(f"  strategy: {result.strategy_used.value}")
    return True


def _cmd_remove(args: argparse.Namespace, scope: _Scope) -> bool:
    manifest = read_manifest(scope.manifest_dir, scope.kind)
    if manifest is None and not scope.global_scope:
        raise SyncError(f"No {scope.kind.manifest_filename} found in {scope.manifest_dir}.")

    directories = scope.install_directories()
    ok = True
    removed = 0
    for name in args.names:
        in_manifest = manifest is not None and manifest.get(name) is not None
        on_disk = [directory / name for directory in directories if (directory / name).exists()]
        if not in_manifest and not on_disk:
            where = "global directories" if scope.global_scope else scope.kind.manifest_filename
            print(f"{name}: not found in {where}")
            ok = False
            continue

        entry = manifest.get(name) if manifest is not None else None
        if in_manifest:
            remove_entry(scope.manifest_dir, scope.kind, name)
        targets = list(on_disk)
        if entry is not None and entry.path:
            custom = (scope.cwd / Path(entry.path).expanduser()) / name
            if custom.exists() and custom not in targets:
                targets.append(custom)
        for target in targets:
            _delete(target)
        print(f"Removed {name}")
        removed += 1

    if len(args.names) > 1:
        print(f"{removed}/{len(args.names)} {scope.kind.label}(s) removed")
    return ok


def _cmd_list(args: argparse.Namespace, scope: _Scope) -> bool:
    manifest = _require_manifest(scope)
    if not manifest.entries and not manifest.user_entries:
        print('No entries. Use "skillsync add <source>" to add some.')
        return True

    if manifest.entries:
        print(f"Installed ({scope.name}):")
        for name, entry in sorted(manifest.entries.items()):
            print(f"  {_describe_entry(name, entry)}")
    if manifest.user_entries:
        print("User:")
        for name, entry in sorted(manifest.user_entries.items()):
            print(f"  {_describe_entry(name, entry)}")
    return True


def _cmd_init(args: argparse.Namespace, scope: _Scope) -> bool:
    directory = scope.manifest_dir
    if read_manifest(directory, scope.kind) is not None:
        print(f"{scope.name} {scope.kind.manifest_filename} already exists; skipping.")
    else:
        write_manifest(Manifest(name=directory.resolve().name, kind=scope.kind), directory)
        print(f"Created {scope.name} {scope.kind.manifest_filename}")

    config_file = directory / CONFIG_FILENAME
    if config_file.exists() and not args.agents:
        print(f"{scope.name} {CONFIG_FILENAME} already exists; skipping.")
        return True

    agents = list(args.agents or scope.registry.detect_installed() or DEFAULT_AGENTS)
    unknown = [slug for slug in agents if scope.registry.get(slug) is None]
    if unknown:
        print(f"Warning: unknown agent(s) {', '.join(unknown)} will install into .<agent>/skills")

    existing = load_config(directory) if config_file.exists() else SkillSyncConfig(root=directory)
    existing.agents = agents
    if scope.global_scope:
        existing.global_.default_agents = list(agents)
    write_config(existing, directory)
    print(f"Created {scope.name} {CONFIG_FILENAME} (agents: {', '.join(agents)})")
    return True



def _cmd_defaults(args: argparse.Namespace, scope: _Scope) -> bool:
    directory = scope.manifest_dir
    config = load_config(directory)
    if not args.agents:
        configured = (config.global_.default_agents or config.agents) if scope.global_scope else config.agents
        if configured:
            print(f"{scope.name.capitalize()} agents: {', '.join(configured)}")
        else:
            print(f"No {scope.name} agents configured; using {', '.join(scope.config.effective_agents())}")
        return True

    agents = list(args.agents)
    unknown = [slug for slug in agents if scope.registry.get(slug) is None]
    if unknown:
        print(f"Warning: unknown agent(s) {', '.join(unknown)} will install into .<agent>/skills")
    if scope.global_scope:
        config.global_.default_agents = agents
    else:
        config.agents = agents
    write_config(config, directory)
    print(f"Saved {scope.name} agents: {', '.join(agents)}")
    return True


_COMMANDS = {
    "install": _cmd_install,
    "update": _cmd_update,
    "add": _cmd_add,
    "remove": _cmd_remove,
    "list": _cmd_list,
    "init": _cmd_init,
    "defaults": _cmd_defaults,
}


# ----------------------------------------------------------------------
# Output helpers


def _format_diff(diff: DirectoryDiff) -> List[str]:
    lines = [f"+ {path}" for path in diff.added]
    lines.extend(f"- {path}" for path in diff.removed)
    lines.extend(f"~ {path}" for path in diff.changed)
    return lines


def _format_paths(paths: List[str]) -> str:
    return ", ".join(_relativize(Path(path)) for path in paths) or "(nothing written)"


def _describe_entry(name: str, entry: ManifestEntry) -> str:
    parts = [name, entry.source]
    if entry.path:
        parts.append(f"path={entry.path}")
    if entry.strategy is not None:
        parts.append(f"strategy={entry.strategy.value}")
    return "  ".join(parts)


def _print_summary(summary: BatchSummary) -> None:
    print(
        f"{summary.succeeded} succeeded, {summary.failed} failed, {summary.up_to_date} up to date"
    )


def _delete(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
