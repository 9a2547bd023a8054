"""
Peer dependency checks: current status, potential upgrade conflicts and
per-package lookups.

Runs as ``pdc analyze`` or directly with ``python -m
peer_dependency_checker.peer_check``; ``BRIEF_MODE=true`` mirrors ``--brief``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from .classifier import DEV_DEPENDENCIES, unsatisfied_peers
from .config import ProjectConfig, env_flag, load_config
from .logger import setup_logger
from .managers import resolve_adapter
from .manifest import declared_dependencies, dependency_type, load_manifest_or_none
from .models import PackageSpec, PeerAnalysis, PeerCheckResult, PeerRequirement
from .process import ProcessRunner
from .report import (
    render_analysis,
    render_health,
    render_no_manifest,
    render_peer_checks,
    render_peer_status,
)
from .upgrade_check import scan_project


logger = logging.getLogger(__name__)


def fetch_peer_requirements(spec: PackageSpec, adapter) -> Optional[PeerRequirement]:
    """Peer requirements of ``spec``: ``{}`` if there are none, ``None`` if the lookup failed."""
    return adapter.fetch_peer_requirements(spec)


def check_packages(
    specs: Sequence[PackageSpec],
    adapter,
    declared_deps: Optional[Mapping[str, str]] = None,
) -> List[PeerCheckResult]:
    """Look up each spec once; compare with ``declared_deps`` when given."""
    results = []
    for spec in specs:
        peers = fetch_peer_requirements(spec, adapter)
        failures = ()
        if peers and declared_deps is not None:
            failures = unsatisfied_peers(peers, declared_deps)
        results.append(PeerCheckResult(spec, peers, failures))
    return results


def analyze_project(
    project_dir: Path,
    config: ProjectConfig,
    brief: bool = False,
    runner: Optional[ProcessRunner] = None,
) -> Optional[PeerAnalysis]:
    manifest = load_manifest_or_none(project_dir)
    if manifest is None:
        return None

    adapter = resolve_adapter(project_dir, config, runner)
    issues = adapter.peer_issues()
    if brief:
        return PeerAnalysis(adapter.name, issues)

    declared = declared_dependencies(manifest)
    specs = [
        PackageSpec(name)
        for name in config.critical_packages
        if name in declared
        and name not in config.exclude_packages
        and (config.include_dev_dependencies or dependency_type(manifest, name) != DEV_DEPENDENCIES)
    ]
    logger.debug("Checking peer requirements of %d critical package(s)", len(specs))
    # Packages without peer dependencies cannot conflict.
    potential = [
        result for result in check_packages(specs, adapter, declared)
        if result.peer_requirements != {}
    ]
    return PeerAnalysis(adapter.name, issues, potential)


def run_analyze(
    project_dir: Path,
    config: ProjectConfig,
    brief: bool = False,
    runner: Optional[ProcessRunner] = None,
) -> str:
    brief = brief or env_flag("BRIEF_MODE")
    fmt = config.output_format
    analysis = analyze_project(project_dir, config, brief, runner)
    if analysis is None:
        return render_no_manifest(str(project_dir), fmt)
    if brief:
        return render_peer_status(analysis.package_manager, analysis.peer_issues, fmt)
    return render_analysis(analysis, fmt)


def run_check(
    specs: Sequence[PackageSpec],
    project_dir: Path,
    config: ProjectConfig,
    runner: Optional[ProcessRunner] = None,
) -> str:
    adapter = resolve_adapter(project_dir, config, runner)
    return render_peer_checks(check_packages(specs, adapter), config.output_format)


def run_precheck(
    specs: Sequence[PackageSpec],
    project_dir: Path,
    config: ProjectConfig,
    runner: Optional[ProcessRunner] = None,
) -> str:
    """Check packages against the project, or run a health check without any."""
    fmt = config.output_format
    manifest = load_manifest_or_none(project_dir)

    if specs:
        adapter = resolve_adapter(project_dir, config, runner)
        declared = declared_dependencies(manifest) if manifest is not None else {}
        results = check_packages(specs, adapter, declared)
        return render_peer_checks(results, fmt, against_project=True)

    if manifest is None:
        return render_no_manifest(str(project_dir), fmt)
    adapter = resolve_adapter(project_dir, config, runner)
    issues = adapter.peer_issues()
    scan = scan_project(project_dir, config, quick=True, runner=runner)
    return render_health(adapter.name, issues, scan, fmt)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Peer dependency analysis")
    parser.add_argument("--brief", action="store_true", help="Print a one-line verdict")
    parser.add_argument("--project-dir", default=".", help="Project root. Default: .")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    args = parser.parse_args(argv)

    setup_logger(args.verbose)
    project_dir = Path(args.project_dir)
    print(run_analyze(project_dir, load_config(project_dir), brief=args.brief))
    return 0


if __name__ == "__main__":
    sys.exit(main())
