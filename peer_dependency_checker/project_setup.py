"""
One-shot project setup: npm scripts, a devDependency and ``.pdcrc.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from . import __version__
from .config import CONFIG_FILENAME, default_config_dict
from .managers import detect_package_manager, get_adapter
from .manifest import read_manifest, write_manifest
from .models import SetupOptions, SetupResult
from .process import ProcessRunner


logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "peer-dependency-checker"

HOOK_SCRIPTS = {
    "preinstall": "pdc scan --quick || true",
    "postinstall": "pdc analyze --brief || true",
}

SETUP_SCRIPTS = {
    "pdc:scan": "pdc scan",
    "pdc:check": "pdc scan --quick || true",
    "pdc:analyze": "pdc analyze --brief || true",
}

SMOKE_TEST_COMMANDS = (
    ["pdc", "--version"],
    ["npx", "pdc", "--version"],
)


def merge_scripts(existing: Dict[str, str], wanted: Dict[str, str], result: SetupResult) -> Dict[str, str]:
    """Add ``wanted`` scripts to ``existing`` without overwriting any key."""
    merged = dict(existing)
    for name, command in wanted.items():
        if name in merged:
            result.skipped_scripts.append(name)
            continue
        merged[name] = command
        result.added_scripts.append(name)
    return merged


def _manifest_section(manifest: Dict, key: str) -> Dict:
    value = manifest.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f'"{key}" in package.json must be an object, not {type(value).__name__}')
    return value


def smoke_test(project_dir: Path, runner: ProcessRunner) -> bool:
    for command in SMOKE_TEST_COMMANDS:
        if runner.run(command, cwd=project_dir).ok:
            return True
        logger.debug("%s failed", " ".join(command))
    return False


def apply_setup(
    project_dir: Path,
    options: Optional[SetupOptions] = None,
    runner: Optional[ProcessRunner] = None,
) -> SetupResult:
    """
    Wire the checker into the project at ``project_dir``.

    Re-running it on an already configured project changes nothing.

    Raises:
        ManifestNotFoundError: ``package.json`` is missing.
        ValueError: ``scripts`` or a dependency section is not an object.
    """
    project_dir = Path(project_dir)
    options = options or SetupOptions()
    runner = runner or ProcessRunner()

    manifest = read_manifest(project_dir)
    scripts = _manifest_section(manifest, "scripts")
    declared = {
        **_manifest_section(manifest, "dependencies"),
        **_manifest_section(manifest, "devDependencies"),
    }
    package_manager = options.package_manager or detect_package_manager(project_dir, runner)
    adapter = get_adapter(package_manager, project_dir, runner=runner)

    result = SetupResult(
        project_name=manifest.get("name") or project_dir.resolve().name,
        package_manager=package_manager,
        dry_run=options.dry_run,
    )

    updated = json.loads(json.dumps(manifest))
    wanted = dict(SETUP_SCRIPTS) if options.skip_hooks else {**HOOK_SCRIPTS, **SETUP_SCRIPTS}
    updated["scripts"] = merge_scripts(scripts, wanted, result)

    if DISTRIBUTION_NAME not in declared:
        dev_deps = dict(_manifest_section(manifest, "devDependencies"))
        dev_deps[DISTRIBUTION_NAME] = f"^{__version__}"
        updated["devDependencies"] = dev_deps
        result.dev_dependency_added = True

    result.manifest_changed = updated != manifest
    if result.manifest_changed and not options.dry_run:
        write_manifest(project_dir, updated)
        logger.debug("Updated package.json in %s", project_dir)

    config_path = project_dir / CONFIG_FILENAME
    if options.skip_config:
        result.config_skipped_reason = "not requested"
    elif config_path.exists():
        result.config_skipped_reason = "already exists"
    else:
        if not options.dry_run:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(default_config_dict(package_manager), f, indent=2)
                f.write("\n")
        result.config_created = True

    if not options.dry_run:
        result.smoke_test_passed = smoke_test(project_dir, runner)
        if not result.smoke_test_passed:
            logger.debug("pdc is not reachable from %s", project_dir)
            result.install_hint = " ".join(adapter.install_command(DISTRIBUTION_NAME, dev=True))

    return result
