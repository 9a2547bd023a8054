"""
Interfaces for package manager adapters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .models import OutdatedEntry, PackageSpec, PeerRequirement


class PackageManagerAdapter(Protocol):
    """Normalize one package manager's CLI output into shared shapes."""

    name: str
    project_dir: Path

    def outdated(self) -> Optional[List[OutdatedEntry]]:
        ...

    def peer_issues(self) -> Optional[List[str]]:
        ...

    def fetch_peer_requirements(self, spec: PackageSpec) -> Optional[PeerRequirement]:
        ...

    def simulate_install(self) -> Optional[List[str]]:
        ...

    def audit(self) -> Optional[Dict[str, int]]:
        ...

    def dependency_tree_size(self) -> Optional[int]:
        ...

    def install_command(self, package: str, dev: bool = False) -> List[str]:
        ...

    def update_command(self) -> List[str]:
        ...
