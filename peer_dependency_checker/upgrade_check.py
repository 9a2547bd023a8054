"""
Upgrade compatibility scan.

Collects outdated packages from the project's package manager, looks up peer
dependencies for the watch-listed packages and buckets every upgrade by risk.
The full scan also counts the dependency tree and runs a security audit.
Runs as ``pdc scan`` or directly with ``python -m
peer_dependency_checker.upgrade_check``; ``QUICK_MODE=true`` mirrors
``--quick``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from .classifier import DEV_DEPENDENCIES, classify
from .config import ProjectConfig, env_flag, load_config
from .logger import setup_logger
from .managers import resolve_adapter
from .manifest import (
    declared_dependencies,
    dependency_type,
    load_manifest_or_none,
    manifest_backup,
    read_manifest,
    write_manifest,
)
from .models import OutdatedEntry, PackageSpec, PeerRequirement, ScanReport
from .process import ProcessRunner
from .report import render_no_manifest, render_quick_scan, render_scan
from .versions import declared_base_version, parse_version


logger = logging.getLogger(__name__)


def fill_from_manifest(entries: Iterable[OutdatedEntry], manifest: Dict) -> List[OutdatedEntry]:
    """Fill in dependency types and missing current versions from ``package.json``."""
    declared = declared_dependencies(manifest)
    filled = []
    for entry in entries:
        current = entry.current_version
        if not current:
            base = declared_base_version(declared.get(entry.name))
            if base is not None:
                current = "%d.%d.%d" % base
        filled.append(replace(
            entry,
            current_version=current,
            dependency_type=entry.dependency_type or dependency_type(manifest, entry.name),
        ))
    return filled


def prefetch_peer_requirements(
    entries: Iterable[OutdatedEntry],
    config: ProjectConfig,
    adapter,
    show_progress: bool = False,
) -> Dict[str, Optional[PeerRequirement]]:
    """Query peer dependencies of the latest version of each watch-listed entry."""
    watchlist = set(config.critical_packages)
    targets = [
        entry for entry in entries
        if entry.name in watchlist
        and entry.name not in config.exclude_packages
        and (config.include_dev_dependencies or entry.dependency_type != DEV_DEPENDENCIES)
    ]

    peers: Dict[str, Optional[PeerRequirement]] = {}
    for entry in tqdm(
        targets,
        desc="Checking peer dependencies",
        unit="pkg",
        disable=not show_progress,
        leave=False,
    ):
        spec = PackageSpec(entry.name, entry.latest_version)
        peers[entry.name] = adapter.fetch_peer_requirements(spec)
    return peers


def simulate_upgrades(adapter, entries: Iterable[OutdatedEntry]) -> Optional[List[str]]:
    """Dry-run an install with every entry bumped to its latest version.

    ``package.json`` is rewritten for the duration of the dry run only; it is
    restored on every exit path, including interrupts.
    """
    upgrades = [entry for entry in entries if parse_version(entry.latest_version)]
    if not upgrades:
        return []

    with manifest_backup(adapter.project_dir):
        manifest = read_manifest(adapter.project_dir)
        for entry in upgrades:
            section = dependency_type(manifest, entry.name)
            if section is None:
                continue
            manifest[section][entry.name] = entry.latest_version
        write_manifest(adapter.project_dir, manifest)
        return adapter.simulate_install()


def scan_project(
    project_dir: Path,
    config: ProjectConfig,
    quick: bool = False,
    simulate: bool = False,
    runner: Optional[ProcessRunner] = None,
    show_progress: bool = False,
) -> Optional[ScanReport]:
    """Gather a scan report, or ``None`` when the project has no manifest."""
    manifest = load_manifest_or_none(project_dir)
    if manifest is None:
        return None

    adapter = resolve_adapter(project_dir, config, runner)
    outdated = adapter.outdated()
    if outdated is None:
        logger.warning("Could not get outdated packages from %s", adapter.name)
    entries = fill_from_manifest(outdated or [], manifest)
    declared = declared_dependencies(manifest)

    if quick:
        classified = classify(entries, (), declared, config)
        return ScanReport(adapter.name, classified, outdated_available=outdated is not None)

    peers = prefetch_peer_requirements(entries, config, adapter, show_progress)
    classified = classify(
        entries,
        config.critical_packages,
        declared,
        config,
        peer_lookup=lambda spec: peers.get(spec.name),
    )
    peer_issues = adapter.peer_issues()
    tree_size = adapter.dependency_tree_size()
    audit = adapter.audit()
    simulation = None
    if simulate:
        simulation = simulate_upgrades(adapter, [item.entry for item in classified])

    return ScanReport(
        package_manager=adapter.name,
        classified=classified,
        outdated_available=outdated is not None,
        peer_issues=peer_issues,
        simulation=simulation,
        simulated=simulate,
        audit=audit,
        dependency_tree_size=tree_size,
    )


def run_scan(
    project_dir: Path,
    config: ProjectConfig,
    quick: bool = False,
    simulate: bool = False,
    runner: Optional[ProcessRunner] = None,
) -> str:
    quick = quick or env_flag("QUICK_MODE")
    fmt = config.output_format
    show_progress = fmt == "colored" and sys.stderr.isatty()
    report = scan_project(project_dir, config, quick, simulate, runner, show_progress)
    if report is None:
        return render_no_manifest(str(project_dir), fmt)
    if quick:
        return render_quick_scan(report, fmt)
    return render_scan(report, fmt, config.risk_tolerance)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Upgrade compatibility scan")
    parser.add_argument("--quick", action="store_true", help="Print a one-line summary")
    parser.add_argument("--project-dir", default=".", help="Project root. Default: .")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    args = parser.parse_args(argv)

    setup_logger(args.verbose)
    project_dir = Path(args.project_dir)
    print(run_scan(project_dir, load_config(project_dir), quick=args.quick))
    return 0


if __name__ == "__main__":
    sys.exit(main())
