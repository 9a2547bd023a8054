"""
Package manager detection and per-manager adapters.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Type

from .config import ProjectConfig
from .interfaces import PackageManagerAdapter
from .models import OutdatedEntry, PackageSpec, PeerRequirement
from .process import CommandResult, ProcessRunner


logger = logging.getLogger(__name__)

# Highest specificity first.
LOCKFILES = (
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)
PROBE_ORDER = ("bun", "pnpm", "yarn")
DEFAULT_PACKAGE_MANAGER = "npm"

UPDATE_COMMANDS = {
    "npm": "npm update",
    "pnpm": "pnpm update",
    "yarn": "yarn upgrade",
    "bun": "bun update",
}

MAX_ISSUE_LINES = 10
MAX_SIMULATION_LINES = 50
SIMULATION_TIMEOUT = 120.0
AUDIT_TIMEOUT = 30.0
AUDIT_SEVERITIES = ("critical", "high", "moderate", "low", "info")

_BUN_CELL_SPLIT = re.compile(r"[│|]")
_BUN_MARKER = re.compile(r"^(.*?)\s*\((dev|peer|optional)\)$")
_BUN_MARKER_TYPES = {
    "dev": "devDependencies",
    "peer": "peerDependencies",
    "optional": "optionalDependencies",
}
_TREE_BRANCH = re.compile(r"[├└]")


def detect_package_manager(project_dir: Path, runner: Optional[ProcessRunner] = None) -> str:
    """Pick the package manager from lockfiles, then from binaries on PATH."""
    project_dir = Path(project_dir)
    for lockfile, manager in LOCKFILES:
        if (project_dir / lockfile).exists():
            logger.debug("Found %s, using %s", lockfile, manager)
            return manager

    runner = runner or ProcessRunner()
    for manager in PROBE_ORDER:
        if runner.run([manager, "--version"]).ok:
            logger.debug("No lockfile found, %s is available", manager)
            return manager
    return DEFAULT_PACKAGE_MANAGER


def _is_npm_error(data: Dict) -> bool:
    error = data.get("error")
    return isinstance(error, dict) and ("code" in error or "summary" in error)


def parse_npm_outdated(text: str) -> Optional[List[OutdatedEntry]]:
    """Parse ``npm outdated --json --long``; pnpm's JSON has the same layout."""
    text = text.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Could not parse outdated output: %s", e)
        return None
    if not isinstance(data, dict) or _is_npm_error(data):
        return None

    entries = []
    for name, info in data.items():
        # npm workspaces report one record per dependent.
        if isinstance(info, list):
            info = info[0] if info else {}
        if not isinstance(info, dict):
            continue
        entries.append(OutdatedEntry(
            name=name,
            current_version=str(info.get("current") or ""),
            wanted_version=str(info.get("wanted") or ""),
            latest_version=str(info.get("latest") or ""),
            dependency_type=info.get("type") or info.get("dependencyType"),
        ))
    return entries


def parse_yarn_outdated(text: str) -> Optional[List[OutdatedEntry]]:
    """Parse the newline-delimited JSON of ``yarn outdated --json``."""
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if record.get("type") != "table":
            continue

        data = record.get("data") or {}
        columns = {str(head).lower(): i for i, head in enumerate(data.get("head", []))}
        if not all(key in columns for key in ("package", "current", "wanted", "latest")):
            logger.warning("Unexpected yarn outdated table layout: %s", list(columns))
            return None

        type_index = columns.get("package type")
        width = max(columns.values()) + 1
        entries = []
        for row in data.get("body", []):
            if not isinstance(row, list) or len(row) < width:
                logger.warning("Skipping malformed yarn outdated row: %s", row)
                continue
            entries.append(OutdatedEntry(
                name=row[columns["package"]],
                current_version=row[columns["current"]],
                wanted_version=row[columns["wanted"]],
                latest_version=row[columns["latest"]],
                dependency_type=row[type_index] if type_index is not None else None,
            ))
        return entries
    return []


def parse_bun_outdated(text: str) -> Optional[List[OutdatedEntry]]:
    """Parse the box-drawn table printed by ``bun outdated``."""
    header: Optional[List[str]] = None
    entries = []
    for line in text.splitlines():
        if "│" not in line and "|" not in line:
            continue
        cells = [cell.strip() for cell in _BUN_CELL_SPLIT.split(line)]
        cells = [cell for cell in cells if cell]
        if not cells or all(set(cell) <= set("-:= ") for cell in cells):
            continue
        if header is None:
            lowered = [cell.lower() for cell in cells]
            if "package" in lowered and "latest" in lowered:
                header = lowered
            continue
        if len(cells) != len(header):
            continue

        row = dict(zip(header, cells))
        name = row["package"]
        dep_type = None
        marker = _BUN_MARKER.match(name)
        if marker:
            name, kind = marker.groups()
            dep_type = _BUN_MARKER_TYPES[kind]
        entries.append(OutdatedEntry(
            name=name,
            current_version=row.get("current", ""),
            wanted_version=row.get("update", row.get("wanted", "")),
            latest_version=row["latest"],
            dependency_type=dep_type,
        ))
    return entries


def parse_peer_requirements(text: str) -> Optional[PeerRequirement]:
    """Parse ``info <pkg> peerDependencies --json``.

    Empty output means the package declares no peer dependencies and yields
    ``{}``. Malformed output yields ``None``.
    """
    text = text.strip()
    if not text:
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None

    if isinstance(data, dict) and data.get("type") == "inspect":
        data = data.get("data")
    # A range that matches several versions returns one entry per version,
    # oldest first.
    if isinstance(data, list):
        data = data[-1] if data else {}
    if data is None:
        return {}
    if not isinstance(data, dict) or _is_npm_error(data):
        return None
    return {str(name): str(spec) for name, spec in data.items()}


def parse_audit(text: str) -> Optional[Dict[str, int]]:
    """Parse ``audit --json`` into a count per severity.

    npm and pnpm print one document with ``metadata.vulnerabilities``. yarn
    prints newline-delimited JSON ending in an ``auditSummary`` record.
    Anything without a summary, such as a registry error, yields ``None``.
    """
    text = text.strip()
    if not text:
        return None
    try:
        documents = [json.loads(text)]
    except json.JSONDecodeError:
        documents = []
        for line in text.splitlines():
            line = line.strip()
            if not line.startswith("{"):
                continue
            try:
                documents.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    for document in documents:
        if not isinstance(document, dict):
            continue
        if document.get("type") == "auditSummary":
            summary = document.get("data") or {}
        else:
            summary = document.get("metadata") or {}
        counts = summary.get("vulnerabilities") if isinstance(summary, dict) else None
        if isinstance(counts, dict):
            return {
                severity: counts[severity] if isinstance(counts.get(severity), int) else 0
                for severity in AUDIT_SEVERITIES
            }
    return None


def count_tree_entries(text: str) -> int:
    """Count the branches of an ``ls``-style dependency tree."""
    return sum(1 for line in text.splitlines() if _TREE_BRANCH.search(line))


def _combined_output(result: CommandResult) -> Optional[str]:
    """Text worth scanning, or ``None`` if the command never really ran."""
    if result.ok:
        return "\n".join(part for part in (result.output, result.stderr) if part)
    if result.returncode is None:
        return None
    return result.partial_output


class NpmAdapter(PackageManagerAdapter):
    """Adapter for npm."""

    name = "npm"
    issue_pattern: Pattern = re.compile(r"WARN|ERR|missing|invalid|UNMET")
    simulation_pattern: Pattern = re.compile(r"ERESOLVE|WARN|ERR|peer", re.IGNORECASE)

    def __init__(self, project_dir: Path, runner: Optional[ProcessRunner] = None) -> None:
        self.project_dir = Path(project_dir)
        self.runner = runner or ProcessRunner()

    def outdated(self) -> Optional[List[OutdatedEntry]]:
        result = self.runner.run(self._outdated_command(), cwd=self.project_dir)
        # Most managers exit non-zero when something is outdated.
        text = result.output if result.ok else result.stdout
        if not result.ok and not text.strip():
            logger.debug("%s outdated failed: %s", self.name, result.reason)
            return None
        return self._parse_outdated(text)

    def peer_issues(self) -> Optional[List[str]]:
        result = self.runner.run(self._ls_command(), cwd=self.project_dir)
        text = _combined_output(result)
        if text is None:
            logger.debug("%s ls failed: %s", self.name, result.reason)
            return None
        lines = [line.rstrip() for line in text.splitlines() if self.issue_pattern.search(line)]
        return lines[:MAX_ISSUE_LINES]

    def fetch_peer_requirements(self, spec: PackageSpec) -> Optional[PeerRequirement]:
        result = self.runner.run(self._info_command(spec), cwd=self.project_dir)
        if not result.ok:
            logger.debug("Peer dependency lookup failed for %s: %s", spec, result.reason)
            return None
        peers = parse_peer_requirements(result.output)
        if peers is None:
            logger.warning("Could not parse peer dependency info for %s", spec)
        return peers

    def simulate_install(self) -> Optional[List[str]]:
        command = ["npm", "install", "--dry-run", "--ignore-scripts", "--no-audit", "--no-fund"]
        result = self.runner.run(command, timeout=SIMULATION_TIMEOUT, cwd=self.project_dir)
        text = _combined_output(result)
        if text is None:
            logger.debug("Dry-run install failed: %s", result.reason)
            return None
        lines = [line.rstrip() for line in text.splitlines() if self.simulation_pattern.search(line)]
        return lines[:MAX_SIMULATION_LINES]

    def audit(self) -> Optional[Dict[str, int]]:
        result = self.runner.run(self._audit_command(), timeout=AUDIT_TIMEOUT, cwd=self.project_dir)
        # audit exits non-zero when it finds vulnerabilities.
        text = result.output if result.ok else result.stdout
        counts = parse_audit(text)
        if counts is None:
            logger.debug("%s audit gave no summary", self.name)
        return counts

    def dependency_tree_size(self) -> Optional[int]:
        result = self.runner.run(self._tree_command(), cwd=self.project_dir)
        text = _combined_output(result)
        if text is None:
            logger.debug("%s dependency tree failed: %s", self.name, result.reason)
            return None
        return count_tree_entries(text)

    def install_command(self, package: str, dev: bool = False) -> List[str]:
        return ["npm", "install", "--save-dev", package] if dev else ["npm", "install", package]

    def update_command(self) -> List[str]:
        return UPDATE_COMMANDS[self.name].split()

    def _outdated_command(self) -> List[str]:
        return ["npm", "outdated", "--json", "--long"]

    def _ls_command(self) -> List[str]:
        return ["npm", "ls", "--depth=0"]

    def _tree_command(self) -> List[str]:
        return ["npm", "ls", "--depth=2"]

    def _audit_command(self) -> List[str]:
        return ["npm", "audit", "--json"]

    def _info_command(self, spec: PackageSpec) -> List[str]:
        return ["npm", "info", str(spec), "peerDependencies", "--json"]

    def _parse_outdated(self, text: str) -> Optional[List[OutdatedEntry]]:
        return parse_npm_outdated(text)


class PnpmAdapter(NpmAdapter):
    """Adapter for pnpm."""

    name = "pnpm"
    issue_pattern = re.compile(r"WARN|ERROR|✕")

    def simulate_install(self) -> Optional[List[str]]:
        return None

    def install_command(self, package: str, dev: bool = False) -> List[str]:
        return ["pnpm", "add", "--save-dev", package] if dev else ["pnpm", "add", package]

    def _outdated_command(self) -> List[str]:
        return ["pnpm", "outdated", "--format", "json"]

    def _ls_command(self) -> List[str]:
        return ["pnpm", "ls", "--depth=0"]

    def _tree_command(self) -> List[str]:
        return ["pnpm", "ls", "--depth=2"]

    def _audit_command(self) -> List[str]:
        return ["pnpm", "audit", "--json"]

    def _info_command(self, spec: PackageSpec) -> List[str]:
        return ["pnpm", "info", str(spec), "peerDependencies", "--json"]


class YarnAdapter(NpmAdapter):
    """Adapter for yarn (classic JSON output)."""

    name = "yarn"
    issue_pattern = re.compile(r"warning|error", re.IGNORECASE)

    def simulate_install(self) -> Optional[List[str]]:
        return None

    def install_command(self, package: str, dev: bool = False) -> List[str]:
        return ["yarn", "add", "--dev", package] if dev else ["yarn", "add", package]

    def _outdated_command(self) -> List[str]:
        return ["yarn", "outdated", "--json"]

    def _ls_command(self) -> List[str]:
        return ["yarn", "list", "--depth=0"]

    def _tree_command(self) -> List[str]:
        return ["yarn", "list", "--depth=2"]

    def _audit_command(self) -> List[str]:
        return ["yarn", "audit", "--json"]

    def _info_command(self, spec: PackageSpec) -> List[str]:
        return ["yarn", "info", str(spec), "peerDependencies", "--json"]

    def _parse_outdated(self, text: str) -> Optional[List[OutdatedEntry]]:
        return parse_yarn_outdated(text)


class BunAdapter(NpmAdapter):
    """Adapter for bun. Registry lookups go through ``npm info``."""

    name = "bun"
    issue_pattern = re.compile(r"warn|error", re.IGNORECASE)

    def simulate_install(self) -> Optional[List[str]]:
        return None

    def audit(self) -> Optional[Dict[str, int]]:
        return None

    def install_command(self, package: str, dev: bool = False) -> List[str]:
        return ["bun", "add", "--dev", package] if dev else ["bun", "add", package]

    def _outdated_command(self) -> List[str]:
        return ["bun", "outdated"]

    def _ls_command(self) -> List[str]:
        return ["bun", "pm", "ls"]

    def _tree_command(self) -> List[str]:
        return ["bun", "pm", "ls", "--all"]

    def _parse_outdated(self, text: str) -> Optional[List[OutdatedEntry]]:
        return parse_bun_outdated(text)


ADAPTERS: Dict[str, Type[NpmAdapter]] = {
    "npm": NpmAdapter,
    "pnpm": PnpmAdapter,
    "yarn": YarnAdapter,
    "bun": BunAdapter,
}


def get_adapter(
    name: str, project_dir: Path, runner: Optional[ProcessRunner] = None
) -> NpmAdapter:
    try:
        adapter_cls = ADAPTERS[name]
    except KeyError:
        raise ValueError(f"Unsupported package manager: {name}") from None
    return adapter_cls(project_dir, runner=runner)


def resolve_adapter(
    project_dir: Path,
    config: ProjectConfig,
    runner: Optional[ProcessRunner] = None,
) -> NpmAdapter:
    """Use the configured package manager, or detect one."""
    runner = runner or ProcessRunner()
    name = config.package_manager or detect_package_manager(project_dir, runner)
    return get_adapter(name, project_dir, runner=runner)
