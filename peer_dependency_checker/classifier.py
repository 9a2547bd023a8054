"""
Risk classification for outdated dependencies.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import ProjectConfig
from .models import (
    ClassifiedEntry,
    OutdatedEntry,
    PackageSpec,
    PeerRequirement,
    RiskBucket,
    UnsatisfiedPeer,
    VersionDelta,
)
from .versions import declared_base_version, parse_version, satisfies, version_delta


logger = logging.getLogger(__name__)

PeerLookup = Callable[[PackageSpec], Optional[PeerRequirement]]

DEV_DEPENDENCIES = "devDependencies"


def unsatisfied_peers(
    peers: Mapping[str, str], declared_deps: Mapping[str, str]
) -> Tuple[UnsatisfiedPeer, ...]:
    """Peer ranges that the project's declared versions do not meet.

    Peers the project does not declare at all are not reported. A declared
    version that cannot be parsed counts as unsatisfied.
    """
    failures = []
    for name, required in peers.items():
        declared = declared_deps.get(name)
        if declared is None:
            continue
        base = declared_base_version(declared)
        if base is None or not satisfies(base, required):
            failures.append(UnsatisfiedPeer(name=name, required=required, declared=declared))
    return tuple(failures)


def _no_lookup(spec: PackageSpec) -> Optional[PeerRequirement]:
    return None


def classify_entry(
    entry: OutdatedEntry,
    critical: bool,
    declared_deps: Mapping[str, str],
    peer_lookup: PeerLookup = _no_lookup,
) -> ClassifiedEntry:
    current = parse_version(entry.current_version)
    latest = parse_version(entry.latest_version)
    declared = declared_deps.get(entry.name)

    if current is None or latest is None:
        bad = entry.current_version if current is None else entry.latest_version
        return ClassifiedEntry(
            entry=entry,
            bucket=RiskBucket.CONFLICT,
            delta=None,
            reason=f"Unrecognized version {bad!r}",
        )
    if declared is not None and declared_base_version(declared) is None:
        return ClassifiedEntry(
            entry=entry,
            bucket=RiskBucket.CONFLICT,
            delta=None,
            reason=f"Unrecognized declared version {declared!r}",
        )

    delta = version_delta(current, latest)
    peers: Optional[PeerRequirement] = None
    failures: Tuple[UnsatisfiedPeer, ...] = ()
    if critical:
        peers = peer_lookup(PackageSpec(entry.name, entry.latest_version))
        if peers:
            failures = unsatisfied_peers(peers, declared_deps)

    if failures:
        names = ", ".join(peer.name for peer in failures)
        bucket, reason = RiskBucket.CONFLICT, f"Peer requirements not met: {names}"
    elif delta is VersionDelta.MAJOR:
        # A semver major is breaking whether or not peer data was available.
        bucket = RiskBucket.BREAKING
        if peers is None:
            reason = f"Major upgrade {current[0]} -> {latest[0]}"
        else:
            reason = f"Major upgrade {current[0]} -> {latest[0]} (peer requirements met)"
    else:
        bucket, reason = RiskBucket.COMPATIBLE, "Minor or patch update"

    return ClassifiedEntry(
        entry=entry,
        bucket=bucket,
        delta=delta,
        reason=reason,
        peer_requirements=peers,
        unsatisfied_peers=failures,
    )


def classify(
    outdated: Iterable[OutdatedEntry],
    critical_watchlist: Iterable[str],
    declared_deps: Mapping[str, str],
    config: ProjectConfig,
    peer_lookup: PeerLookup = _no_lookup,
) -> List[ClassifiedEntry]:
    """Bucket outdated entries into compatible, conflict and breaking.

    Only packages on ``critical_watchlist`` get a peer dependency lookup.
    The result does not depend on ``config.risk_tolerance``.
    """
    watchlist = set(critical_watchlist)
    classified = []
    for entry in outdated:
        if entry.name in config.exclude_packages:
            logger.debug("Skipping excluded package %s", entry.name)
            continue
        if not config.include_dev_dependencies and entry.dependency_type == DEV_DEPENDENCIES:
            continue
        classified.append(
            classify_entry(entry, entry.name in watchlist, declared_deps, peer_lookup)
        )
    return classified


def group_by_bucket(classified: Iterable[ClassifiedEntry]) -> Dict[RiskBucket, List[ClassifiedEntry]]:
    groups: Dict[RiskBucket, List[ClassifiedEntry]] = {bucket: [] for bucket in RiskBucket}
    for item in classified:
        groups[item.bucket].append(item)
    return groups
