"""
Reporting for compatibility checks.

``json`` output is the stable machine-readable format. ``colored`` and
``minimal`` output are meant for people and may change wording.
"""

from __future__ import annotations

import io
import json
from typing import Dict, Iterable, List, Optional, Sequence

from rich.console import Console
from rich.text import Text

from .classifier import group_by_bucket
from .managers import UPDATE_COMMANDS
from .models import (
    BUCKET_ORDER,
    ClassifiedEntry,
    PeerAnalysis,
    PeerCheckResult,
    RiskBucket,
    ScanReport,
    SetupResult,
)


RULE_WIDTH = 40

_BUCKET_STYLE = {
    RiskBucket.COMPATIBLE: ("🟢", "green"),
    RiskBucket.CONFLICT: ("🟡", "yellow"),
    RiskBucket.BREAKING: ("🔴", "red"),
}


class _Writer:
    """Collect report lines; styling and icons only apply to ``colored``."""

    def __init__(self, fmt: str) -> None:
        self.colored = fmt == "colored"
        self.minimal = fmt == "minimal"
        self._buffer = io.StringIO()
        self._console = Console(
            file=self._buffer,
            force_terminal=self.colored,
            no_color=not self.colored,
            color_system="standard" if self.colored else None,
            width=120,
            highlight=False,
            soft_wrap=True,
            emoji=False,
        )
        self._empty = True

    def line(self, text: str = "", style: Optional[str] = None, icon: str = "", indent: int = 0) -> None:
        if self.colored and icon:
            text = f"{icon} {text}"
        self._console.print(Text(" " * indent + text, style=style if self.colored else ""))
        self._empty = False

    def heading(self, title: str, icon: str = "", style: str = "bold") -> None:
        if not self._empty:
            self.line()
        self.line(title, style=style, icon=icon)
        if not self.minimal:
            self.line("─" * RULE_WIDTH, style="dim")

    def getvalue(self) -> str:
        return self._buffer.getvalue().rstrip("\n")


def _dumps(document: Dict) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def bucket_counts(classified: Iterable[ClassifiedEntry]) -> Dict[RiskBucket, int]:
    return {bucket: len(items) for bucket, items in group_by_bucket(classified).items()}


def recommendations(
    counts: Dict[RiskBucket, int],
    package_manager: str = "npm",
    outdated_available: bool = True,
) -> List[str]:
    """Derive the recommendation steps from bucket sizes alone."""
    if not outdated_available:
        return [
            f"No outdated data available; check that {package_manager} outdated works "
            "in this project and re-run the scan"
        ]
    total = sum(counts.values())
    update = UPDATE_COMMANDS.get(package_manager, f"{package_manager} update")
    if total == 0:
        return ["All dependencies are up to date."]
    if not counts.get(RiskBucket.CONFLICT) and not counts.get(RiskBucket.BREAKING):
        return [f"All {total} update(s) look safe to apply. Run: {update}"]

    phases = []
    if counts.get(RiskBucket.COMPATIBLE):
        phases.append(
            f"Apply the {counts[RiskBucket.COMPATIBLE]} safe minor/patch update(s) first: {update}"
        )
    if counts.get(RiskBucket.CONFLICT):
        phases.append(
            f"Resolve the {counts[RiskBucket.CONFLICT]} peer dependency conflict(s) before "
            "upgrading those packages; check each package's documentation for compatible versions"
        )
    if counts.get(RiskBucket.BREAKING):
        phases.append(
            f"Plan the {counts[RiskBucket.BREAKING]} major upgrade(s) one at a time in a "
            "separate branch (git checkout -b upgrade-dependencies), review each changelog "
            "for breaking changes and run the full test suite after every upgrade"
        )
    return [f"Phase {number}: {text}" for number, text in enumerate(phases, start=1)]


def report_document(
    classified: Sequence[ClassifiedEntry],
    package_manager: str = "npm",
    outdated_available: bool = True,
) -> Dict:
    """The JSON shape of a compatibility report; every bucket key is always present."""
    groups = group_by_bucket(classified)
    counts = {bucket: len(groups[bucket]) for bucket in BUCKET_ORDER}
    document: Dict = {bucket.value: [item.to_dict() for item in groups[bucket]] for bucket in BUCKET_ORDER}
    document["summary"] = {bucket.value: counts[bucket] for bucket in BUCKET_ORDER}
    document["summary"]["total"] = sum(counts.values())
    document["recommendations"] = recommendations(counts, package_manager, outdated_available)
    return document


def _write_entry(writer: _Writer, item: ClassifiedEntry) -> None:
    entry = item.entry
    writer.line(
        f"{entry.name} {entry.current_version or '?'} → {entry.latest_version or '?'}  ({item.reason})",
        indent=3,
    )
    for peer in item.unsatisfied_peers:
        writer.line(
            f"• {peer.name} requires {peer.required} (declared {peer.declared})",
            style="yellow",
            indent=6,
        )


def _write_report(
    writer: _Writer,
    classified: Sequence[ClassifiedEntry],
    risk_tolerance: str,
    package_manager: str,
    outdated_available: bool = True,
) -> None:
    groups = group_by_bucket(classified)
    writer.heading("COMPATIBILITY REPORT", icon="📊")
    if not outdated_available:
        writer.line("No outdated data available", style="dim", icon="⚪")
    elif not classified:
        writer.line("All dependencies are up to date", style="green", icon="✅")

    for bucket in BUCKET_ORDER:
        items = groups[bucket]
        if not items:
            continue
        if bucket is RiskBucket.COMPATIBLE and risk_tolerance == "high":
            continue
        icon, style = _BUCKET_STYLE[bucket]
        writer.line(f"{bucket.value.upper()} ({len(items)})", style=f"bold {style}", icon=icon)
        if bucket is RiskBucket.COMPATIBLE and risk_tolerance == "medium":
            writer.line(f"{len(items)} safe minor/patch update(s) available", indent=3)
            continue
        for item in items:
            _write_entry(writer, item)

    counts = {bucket: len(groups[bucket]) for bucket in BUCKET_ORDER}
    writer.heading("RECOMMENDATIONS", icon="💡")
    for step in recommendations(counts, package_manager, outdated_available):
        writer.line(step, indent=3)


def render(
    classified: Sequence[ClassifiedEntry],
    fmt: str,
    risk_tolerance: str = "medium",
    package_manager: str = "npm",
) -> str:
    """Render classified entries grouped as compatible, conflict, breaking.

    ``risk_tolerance`` controls how much of the compatible bucket is shown:
    ``low`` lists every entry, ``medium`` collapses compatible entries into a
    count and ``high`` hides them. Conflicts and breaking upgrades are always
    listed. JSON output is never filtered.
    """
    if fmt == "json":
        return _dumps(report_document(classified, package_manager))
    writer = _Writer(fmt)
    _write_report(writer, classified, risk_tolerance, package_manager)
    return writer.getvalue()


def _write_peer_issues(writer: _Writer, issues: Optional[List[str]], package_manager: str) -> None:
    if issues is None:
        writer.line(f"No data available (could not run {package_manager} ls)", style="dim", icon="⚪")
    elif not issues:
        writer.line("No peer dependency issues detected", style="green", icon="✅")
    else:
        for issue in issues:
            writer.line(issue, style="yellow", indent=3)


def _write_audit(writer: _Writer, audit: Optional[Dict[str, int]], package_manager: str) -> None:
    if audit is None:
        writer.line(f"No audit data available for {package_manager}", style="dim", icon="⚪")
        return
    found = [(severity, count) for severity, count in audit.items() if count]
    if not found:
        writer.line("No known vulnerabilities", style="green", icon="✅")
        return
    total = sum(count for _, count in found)
    style = "red" if audit.get("critical") or audit.get("high") else "yellow"
    detail = ", ".join(f"{count} {severity}" for severity, count in found)
    writer.line(f"{total} vulnerabilit{'y' if total == 1 else 'ies'} ({detail})", style=style, icon="⚠️")
    if audit.get("critical") or audit.get("high") or audit.get("moderate"):
        writer.line(f"Run {package_manager} audit for details", indent=3)


def render_scan(report: ScanReport, fmt: str, risk_tolerance: str = "medium") -> str:
    if fmt == "json":
        document = report_document(report.classified, report.package_manager, report.outdated_available)
        document.update({
            "packageManager": report.package_manager,
            "outdatedAvailable": report.outdated_available,
            "peerIssues": report.peer_issues,
            "dependencyTreeSize": report.dependency_tree_size,
            "audit": report.audit,
            "simulation": report.simulation,
        })
        return _dumps(document)

    writer = _Writer(fmt)
    writer.heading("OUTDATED PACKAGES", icon="📋")
    if not report.outdated_available:
        writer.line(
            f"No outdated data available (could not run {report.package_manager} outdated)",
            style="dim",
            icon="⚪",
        )
    else:
        writer.line(f"{len(report.classified)} outdated package(s) found via {report.package_manager}")

    writer.heading("CURRENT PEER DEPENDENCY WARNINGS", icon="🔗")
    _write_peer_issues(writer, report.peer_issues, report.package_manager)

    if report.simulated:
        writer.heading("UPGRADE SIMULATION (DRY RUN)", icon="🧪")
        if report.simulation is None:
            writer.line(
                f"Upgrade simulation is not available for {report.package_manager}",
                style="dim",
                icon="⚪",
            )
        elif not report.simulation:
            writer.line("No conflicts found in the dry-run install", style="green", icon="✅")
        else:
            for line in report.simulation:
                writer.line(line, style="yellow", indent=3)

    writer.heading("DEPENDENCY TREE COMPLEXITY", icon="🌳")
    if report.dependency_tree_size is None:
        writer.line(
            f"No data available (could not list the {report.package_manager} dependency tree)",
            style="dim",
            icon="⚪",
        )
    else:
        writer.line(f"{report.dependency_tree_size} package(s) within two levels of the project")

    writer.heading("SECURITY AUDIT", icon="🔒")
    _write_audit(writer, report.audit, report.package_manager)

    _write_report(
        writer, report.classified, risk_tolerance, report.package_manager, report.outdated_available
    )
    return writer.getvalue()


def render_quick_scan(report: ScanReport, fmt: str) -> str:
    counts = bucket_counts(report.classified)
    if fmt == "json":
        return _dumps({
            "packageManager": report.package_manager,
            "outdatedAvailable": report.outdated_available,
            "quick": True,
            "summary": {bucket.value: counts[bucket] for bucket in BUCKET_ORDER},
        })

    writer = _Writer(fmt)
    if not report.outdated_available:
        writer.line("Quick scan: no outdated data available", style="dim", icon="⚪")
        return writer.getvalue()
    total = len(report.classified)
    if total == 0:
        writer.line("Quick scan: all dependencies are up to date", style="green", icon="✅")
        return writer.getvalue()

    attention = counts[RiskBucket.CONFLICT] + counts[RiskBucket.BREAKING]
    style = "yellow" if attention else "green"
    writer.line(
        f"Quick scan: {total} outdated "
        f"({counts[RiskBucket.BREAKING]} breaking, {counts[RiskBucket.CONFLICT]} conflict)",
        style=style,
        icon="⚡",
    )
    if attention:
        writer.line('Run "pdc scan" for the full report', indent=3)
    return writer.getvalue()


def render_peer_status(package_manager: str, issues: Optional[List[str]], fmt: str) -> str:
    """The one-line verdict printed by ``analyze --brief``."""
    if fmt == "json":
        return _dumps({
            "packageManager": package_manager,
            "peerIssues": issues,
            "ok": issues == [],
        })

    writer = _Writer(fmt)
    writer.line("Checking peer dependencies...", icon="🔗")
    if issues is None:
        writer.line("No peer dependency data available", style="dim", icon="⚪")
    elif not issues:
        writer.line("No peer dependency conflicts found", style="green", icon="✅")
    else:
        writer.line("Peer dependency issues detected", style="yellow", icon="⚠️")
        writer.line('Run "pdc analyze" for details', indent=3)
    return writer.getvalue()


def render_analysis(analysis: PeerAnalysis, fmt: str) -> str:
    if fmt == "json":
        return _dumps({
            "packageManager": analysis.package_manager,
            "peerIssues": analysis.peer_issues,
            "potentialConflicts": [result.to_dict() for result in analysis.potential_conflicts],
        })

    writer = _Writer(fmt)
    writer.heading("CURRENT PEER DEPENDENCY STATUS", icon="📋")
    _write_peer_issues(writer, analysis.peer_issues, analysis.package_manager)

    writer.heading("POTENTIAL UPGRADE CONFLICTS", icon="⚠️")
    if not analysis.potential_conflicts:
        writer.line("No major peer dependency conflicts detected", style="green", icon="✅")
    for result in analysis.potential_conflicts:
        _write_peer_check(writer, result)

    writer.heading("RECOMMENDATIONS", icon="💡")
    if analysis.peer_issues is None:
        writer.line("Could not determine the current peer dependency status", style="dim", icon="⚪")
        writer.line(f"• Run {analysis.package_manager} ls to inspect it manually", indent=3)
        writer.line("• Review major upgrades carefully", indent=3)
    elif not analysis.peer_issues:
        writer.line("Your peer dependencies look good!", style="green", icon="✅")
        writer.line("• Safe to proceed with minor updates", indent=3)
        writer.line("• Review major upgrades carefully", indent=3)
    else:
        writer.line("Action needed:", style="yellow", icon="📝")
        writer.line("• Resolve current peer dependency warnings first", indent=3)
        writer.line("• Check package documentation for compatibility", indent=3)
        writer.line("• Test upgrades in a separate branch", indent=3)

    if not writer.minimal:
        writer.line()
        writer.line("For specific package analysis:", icon="🔍")
        writer.line("pdc check react@19 react-dom@19", indent=3)
        writer.line("pdc scan  # Full project analysis", indent=3)
    return writer.getvalue()


def _write_peer_check(writer: _Writer, result: PeerCheckResult) -> None:
    spec = result.spec
    if result.peer_requirements is None:
        writer.line(str(spec), style="red", icon="❌")
        writer.line(f"└── Error: Could not fetch info for {spec}", style="red", indent=3)
        return

    if result.unsatisfied_peers:
        writer.line(str(spec), style="yellow", icon="⚠️")
    else:
        writer.line(str(spec), style="green", icon="✅")
    if not result.peer_requirements:
        writer.line("└── No peer dependencies required", indent=3)
        return

    writer.line("└── Peer deps:", indent=3)
    unsatisfied = {peer.name: peer for peer in result.unsatisfied_peers}
    for name, required in result.peer_requirements.items():
        peer = unsatisfied.get(name)
        if peer is not None:
            writer.line(
                f"• {name}: {required} (declared {peer.declared}, not satisfied)",
                style="yellow",
                indent=7,
            )
        else:
            writer.line(f"• {name}: {required}", indent=7)


def render_peer_checks(
    results: Sequence[PeerCheckResult], fmt: str, against_project: bool = False
) -> str:
    """Render ``check``/``precheck`` lookups, one block per requested package."""
    if fmt == "json":
        return _dumps({"packages": [result.to_dict() for result in results]})

    writer = _Writer(fmt)
    writer.line(f"Testing {len(results)} package(s)...", icon="🧪")
    writer.line()
    for result in results:
        _write_peer_check(writer, result)

    if against_project:
        writer.line()
        if any(result.unsatisfied_peers for result in results):
            writer.line(
                "Conflicts with your declared dependencies detected; resolve them before installing",
                style="yellow",
                icon="⚠️",
            )
        elif all(result.fetched for result in results):
            writer.line("No conflicts with your declared dependencies", style="green", icon="✅")
        else:
            writer.line("Some packages could not be checked; re-run to retry", style="dim", icon="⚪")
    return writer.getvalue()


def render_setup(result: SetupResult, fmt: str) -> str:
    if fmt == "json":
        return _dumps(result.to_dict())

    writer = _Writer(fmt)
    writer.line("peer-dependency-checker setup", style="bold blue", icon="🔍")
    if result.dry_run:
        writer.line("Dry run: no files will be changed", style="dim")
    writer.line(f"Found project: {result.project_name}", style="green", icon="📦")
    writer.line(f"Package manager: {result.package_manager}", style="blue", icon="🔧")

    if result.added_scripts or result.skipped_scripts:
        writer.line("Scripts:", style="yellow", icon="📝")
    for name in result.added_scripts:
        writer.line(f"Added script: {name}", style="green", indent=3)
    for name in result.skipped_scripts:
        writer.line(f"Script '{name}' already exists, skipping", style="yellow", indent=3)
    if result.dev_dependency_added:
        writer.line("Added peer-dependency-checker to devDependencies", style="green", indent=3)

    if result.config_created:
        writer.line("Created .pdcrc.json", style="green", icon="⚙️")
    elif result.config_skipped_reason:
        writer.line(f".pdcrc.json {result.config_skipped_reason}, skipping", style="yellow", icon="⚙️")

    if result.smoke_test_passed is True:
        writer.line("CLI accessible", style="green", icon="🧪")
    elif result.smoke_test_passed is False:
        writer.line("CLI not accessible", style="red", icon="🧪")
        if result.install_hint:
            writer.line(f"Install it with: {result.install_hint}", indent=3)

    writer.line()
    if result.dry_run:
        writer.line("Dry run complete", style="bold", icon="🎉")
    elif result.manifest_changed or result.config_created:
        writer.line("Setup complete!", style="bold green", icon="🎉")
    else:
        writer.line("Already set up; nothing to change", style="bold green", icon="🎉")
    return writer.getvalue()


def render_health(package_manager: str, issues: Optional[List[str]], scan: ScanReport, fmt: str) -> str:
    """``precheck`` without packages: peer status plus a quick outdated summary."""
    if fmt == "json":
        counts = bucket_counts(scan.classified)
        return _dumps({
            "packageManager": package_manager,
            "peerIssues": issues,
            "outdatedAvailable": scan.outdated_available,
            "summary": {bucket.value: counts[bucket] for bucket in BUCKET_ORDER},
        })
    return render_peer_status(package_manager, issues, fmt) + "\n" + render_quick_scan(scan, fmt)


def render_no_manifest(project_dir: str, fmt: str) -> str:
    message = f"No package.json found in {project_dir}; no data available"
    if fmt == "json":
        return _dumps({"available": False, "error": message})
    writer = _Writer(fmt)
    writer.line(message, style="dim", icon="⚪")
    writer.line("Run this command in a Node.js project root", indent=3)
    return writer.getvalue()
