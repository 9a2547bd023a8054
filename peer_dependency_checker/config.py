"""
Project configuration loaded from ``.pdcrc.json``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple


logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".pdcrc.json"

PACKAGE_MANAGERS: Tuple[str, ...] = ("bun", "pnpm", "yarn", "npm")
RISK_TOLERANCES: Tuple[str, ...] = ("low", "medium", "high")
OUTPUT_FORMATS: Tuple[str, ...] = ("colored", "json", "minimal")

# Packages that often bring peer dependency conflicts along with an upgrade.
DEFAULT_CRITICAL_PACKAGES: Tuple[str, ...] = (
    "react",
    "react-dom",
    "@types/react",
    "@types/react-dom",
    "next",
    "typescript",
    "@types/node",
    "eslint",
)

_BOOL_KEYS = {
    "autoCheck": "auto_check",
    "checkOnInstall": "check_on_install",
    "checkOnUpgrade": "check_on_upgrade",
    "includeDevDependencies": "include_dev_dependencies",
}
_KNOWN_KEYS = frozenset(
    {"packageManager", "riskTolerance", "excludePackages", "outputFormat", "criticalPackages"}
    | set(_BOOL_KEYS)
)

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name: str) -> bool:
    """Read a boolean-ish environment variable such as ``QUICK_MODE``."""
    return os.environ.get(name, "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class ProjectConfig:
    """Resolved configuration for a single command execution."""

    package_manager: Optional[str] = None
    risk_tolerance: str = "medium"
    auto_check: bool = True
    check_on_install: bool = True
    check_on_upgrade: bool = True
    exclude_packages: FrozenSet[str] = frozenset()
    include_dev_dependencies: bool = True
    output_format: str = "colored"
    critical_packages: Tuple[str, ...] = DEFAULT_CRITICAL_PACKAGES
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        defaults = cls()
        values: Dict[str, Any] = {}

        manager = data.get("packageManager")
        if manager is not None:
            if manager in PACKAGE_MANAGERS:
                values["package_manager"] = manager
            else:
                logger.warning("Ignoring unknown packageManager %r", manager)

        values["risk_tolerance"] = _choice(
            data, "riskTolerance", RISK_TOLERANCES, defaults.risk_tolerance
        )
        values["output_format"] = _choice(
            data, "outputFormat", OUTPUT_FORMATS, defaults.output_format
        )

        for key, attr in _BOOL_KEYS.items():
            value = data.get(key, getattr(defaults, attr))
            if isinstance(value, bool):
                values[attr] = value
            else:
                logger.warning("Ignoring non-boolean %s=%r", key, value)

        excluded = _string_list(data, "excludePackages")
        if excluded is not None:
            values["exclude_packages"] = frozenset(excluded)
        critical = _string_list(data, "criticalPackages")
        if critical is not None:
            values["critical_packages"] = tuple(critical)

        values["extra"] = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the on-disk shape, keeping unknown keys."""
        data: Dict[str, Any] = {}
        if self.package_manager:
            data["packageManager"] = self.package_manager
        data.update(
            {
                "riskTolerance": self.risk_tolerance,
                "autoCheck": self.auto_check,
                "checkOnInstall": self.check_on_install,
                "checkOnUpgrade": self.check_on_upgrade,
                "excludePackages": sorted(self.exclude_packages),
                "includeDevDependencies": self.include_dev_dependencies,
                "outputFormat": self.output_format,
            }
        )
        if self.critical_packages != DEFAULT_CRITICAL_PACKAGES:
            data["criticalPackages"] = list(self.critical_packages)
        data.update(self.extra)
        return data


def _choice(data: Dict[str, Any], key: str, allowed: Tuple[str, ...], default: str) -> str:
    value = data.get(key, default)
    if value not in allowed:
        logger.warning("Ignoring invalid %s=%r (expected one of %s)", key, value, ", ".join(allowed))
        return default
    return value


def _string_list(data: Dict[str, Any], key: str) -> Optional[list]:
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        logger.warning("Ignoring %s: expected a list of package names", key)
        return None
    return value


def default_config_dict(package_manager: str) -> Dict[str, Any]:
    """The configuration ``setup`` writes into a fresh project."""
    return ProjectConfig(package_manager=package_manager).to_dict()


def load_config(project_dir: Path) -> ProjectConfig:
    """Load ``.pdcrc.json`` from ``project_dir``, falling back to defaults."""
    config_path = Path(project_dir) / CONFIG_FILENAME
    if not config_path.exists():
        return ProjectConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s, using defaults: %s", config_path, e)
        return ProjectConfig()

    if not isinstance(data, dict):
        logger.warning("%s must contain a JSON object, using defaults", config_path)
        return ProjectConfig()
    return ProjectConfig.from_dict(data)
