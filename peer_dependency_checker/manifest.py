"""
Reading and writing a project's ``package.json``.
"""

from __future__ import annotations

import json
import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional


logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"
DEPENDENCY_SECTIONS = ("dependencies", "devDependencies")


class ManifestNotFoundError(FileNotFoundError):
    """Raised when a project directory has no ``package.json``."""


def manifest_path(project_dir: Path) -> Path:
    return Path(project_dir) / MANIFEST_FILENAME


def read_manifest(project_dir: Path) -> Dict:
    path = manifest_path(project_dir)
    if not path.exists():
        raise ManifestNotFoundError(
            f"No {MANIFEST_FILENAME} found in {project_dir}. "
            "Please run this in a Node.js project root."
        )
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def load_manifest_or_none(project_dir: Path) -> Optional[Dict]:
    """Read-only flows degrade to "no data" instead of failing."""
    try:
        return read_manifest(project_dir)
    except ManifestNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", manifest_path(project_dir), e)
        return None


def write_manifest(project_dir: Path, data: Dict) -> Path:
    path = manifest_path(project_dir)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def declared_dependencies(manifest: Dict) -> Dict[str, str]:
    """Merge ``dependencies`` and ``devDependencies``; the former wins on clashes."""
    declared: Dict[str, str] = {}
    for section in reversed(DEPENDENCY_SECTIONS):
        entries = manifest.get(section) or {}
        if isinstance(entries, dict):
            declared.update({name: str(spec) for name, spec in entries.items()})
    return declared


def dependency_type(manifest: Dict, name: str) -> Optional[str]:
    for section in DEPENDENCY_SECTIONS:
        if name in (manifest.get(section) or {}):
            return section
    return None


@contextmanager
def manifest_backup(project_dir: Path) -> Iterator[Path]:
    """Back up ``package.json`` and restore it on every exit path."""
    path = manifest_path(project_dir)
    backup = path.with_name(path.name + ".backup")
    shutil.copyfile(path, backup)
    logger.info("Created backup of %s", path.name)
    try:
        yield backup
    finally:
        shutil.copyfile(backup, path)
        backup.unlink()
        logger.info("Restored original %s", path.name)
