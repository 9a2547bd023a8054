"""
Core data models for peer dependency checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


PeerRequirement = Dict[str, str]


class RiskBucket(str, Enum):
    """Risk classification for a prospective upgrade."""

    COMPATIBLE = "compatible"
    CONFLICT = "conflict"
    BREAKING = "breaking"


BUCKET_ORDER: Tuple[RiskBucket, ...] = (
    RiskBucket.COMPATIBLE,
    RiskBucket.CONFLICT,
    RiskBucket.BREAKING,
)


class VersionDelta(str, Enum):
    """Size of the jump between the current and the latest version."""

    MAJOR = "major"
    MINOR_OR_PATCH = "minor_or_patch"


@dataclass(frozen=True)
class PackageSpec:
    """A package name with the version the user asked about."""

    name: str
    requested_version: str = "latest"

    @classmethod
    def parse(cls, value: str) -> "PackageSpec":
        """Parse ``name@version``; scoped names keep their leading ``@``."""
        value = value.strip()
        at = value.rfind("@")
        if at <= 0:
            return cls(name=value)
        name, version = value[:at], value[at + 1:]
        return cls(name=name, requested_version=version or "latest")

    def __str__(self) -> str:
        return f"{self.name}@{self.requested_version}"


@dataclass(frozen=True)
class OutdatedEntry:
    """A declared dependency whose installed version is behind the latest."""

    name: str
    current_version: str
    wanted_version: str
    latest_version: str
    dependency_type: Optional[str] = None


@dataclass(frozen=True)
class UnsatisfiedPeer:
    """A peer range that the project's declared version does not meet."""

    name: str
    required: str
    declared: str


@dataclass(frozen=True)
class ClassifiedEntry:
    """An outdated entry together with its risk bucket."""

    entry: OutdatedEntry
    bucket: RiskBucket
    delta: Optional[VersionDelta]
    reason: str
    peer_requirements: Optional[PeerRequirement] = None
    unsatisfied_peers: Tuple[UnsatisfiedPeer, ...] = ()

    @property
    def name(self) -> str:
        return self.entry.name

    def to_dict(self) -> Dict:
        return {
            "name": self.entry.name,
            "current": self.entry.current_version,
            "wanted": self.entry.wanted_version,
            "latest": self.entry.latest_version,
            "type": self.entry.dependency_type,
            "delta": self.delta.value if self.delta else None,
            "reason": self.reason,
            "peerDependencies": self.peer_requirements,
            "unsatisfiedPeers": [
                {"name": peer.name, "required": peer.required, "declared": peer.declared}
                for peer in self.unsatisfied_peers
            ],
        }


@dataclass(frozen=True)
class PeerCheckResult:
    """Peer dependency lookup result for one requested package."""

    spec: PackageSpec
    peer_requirements: Optional[PeerRequirement]
    unsatisfied_peers: Tuple[UnsatisfiedPeer, ...] = ()

    @property
    def fetched(self) -> bool:
        return self.peer_requirements is not None

    def to_dict(self) -> Dict:
        if self.peer_requirements is None:
            status = "error"
        elif self.peer_requirements:
            status = "ok"
        else:
            status = "none"
        return {
            "name": self.spec.name,
            "requestedVersion": self.spec.requested_version,
            "status": status,
            "peerDependencies": self.peer_requirements,
            "unsatisfiedPeers": [
                {"name": peer.name, "required": peer.required, "declared": peer.declared}
                for peer in self.unsatisfied_peers
            ],
        }


@dataclass(frozen=True)
class ScanReport:
    """Everything the full ``scan`` flow gathered for rendering."""

    package_manager: str
    classified: List[ClassifiedEntry]
    outdated_available: bool
    peer_issues: Optional[List[str]] = None
    simulation: Optional[List[str]] = None
    simulated: bool = False
    audit: Optional[Dict[str, int]] = None
    dependency_tree_size: Optional[int] = None


@dataclass(frozen=True)
class PeerAnalysis:
    """Result of the ``analyze`` flow."""

    package_manager: str
    peer_issues: Optional[List[str]]
    potential_conflicts: List[PeerCheckResult] = field(default_factory=list)


@dataclass(frozen=True)
class SetupOptions:
    """Options for wiring the checker into a project."""

    package_manager: Optional[str] = None
    skip_hooks: bool = False
    skip_config: bool = False
    dry_run: bool = False


@dataclass
class SetupResult:
    """What ``apply_setup`` changed, or would change on a dry run."""

    project_name: str
    package_manager: str
    dry_run: bool = False
    added_scripts: List[str] = field(default_factory=list)
    skipped_scripts: List[str] = field(default_factory=list)
    dev_dependency_added: bool = False
    manifest_changed: bool = False
    config_created: bool = False
    config_skipped_reason: Optional[str] = None
    smoke_test_passed: Optional[bool] = None
    install_hint: str = ""

    def to_dict(self) -> Dict:
        return {
            "projectName": self.project_name,
            "packageManager": self.package_manager,
            "dryRun": self.dry_run,
            "addedScripts": self.added_scripts,
            "skippedScripts": self.skipped_scripts,
            "devDependencyAdded": self.dev_dependency_added,
            "manifestChanged": self.manifest_changed,
            "configCreated": self.config_created,
            "configSkippedReason": self.config_skipped_reason,
            "smokeTestPassed": self.smoke_test_passed,
        }
