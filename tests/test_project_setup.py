"""Tests for project setup."""

import json

import pytest

from peer_dependency_checker.config import CONFIG_FILENAME
from peer_dependency_checker.manifest import ManifestNotFoundError
from peer_dependency_checker.models import SetupOptions
from peer_dependency_checker.project_setup import HOOK_SCRIPTS, SETUP_SCRIPTS, apply_setup


def read_json(path):
    return json.loads(path.read_text())


def test_setup_adds_scripts_dev_dependency_and_config(make_project, fake_runner, ok):
    project = make_project({"name": "demo", "scripts": {"test": "jest"}}, files={"yarn.lock": ""})
    fake_runner.responses[("pdc", "--version")] = ok("pdc 1.0.1")

    result = apply_setup(project, runner=fake_runner)

    manifest = read_json(project / "package.json")
    assert manifest["scripts"]["test"] == "jest"
    for name, command in {**HOOK_SCRIPTS, **SETUP_SCRIPTS}.items():
        assert manifest["scripts"][name] == command
    assert manifest["devDependencies"]["peer-dependency-checker"] == "^1.0.1"
    assert read_json(project / CONFIG_FILENAME)["packageManager"] == "yarn"
    assert result.package_manager == "yarn"
    assert result.config_created
    assert result.smoke_test_passed is True


def test_existing_scripts_are_never_overwritten(make_project, fake_runner):
    project = make_project({"name": "demo", "scripts": {"preinstall": "echo original"}})

    result = apply_setup(project, SetupOptions(package_manager="npm"), runner=fake_runner)

    assert read_json(project / "package.json")["scripts"]["preinstall"] == "echo original"
    assert "preinstall" in result.skipped_scripts
    assert "postinstall" in result.added_scripts


def test_setup_is_idempotent(make_project, fake_runner):
    project = make_project({"name": "demo"})
    apply_setup(project, SetupOptions(package_manager="npm"), runner=fake_runner)
    before = (project / "package.json").read_text()
    config_before = (project / CONFIG_FILENAME).read_text()

    second =apply_setup(project, SetupOptions(package_manager="npm"), runner=fake_runner)

    assert (project / "package.json").read_text() == before
    assert not second.manifest_changed
    assert second.added_scripts == []
    assert not second.dev_dependency_added
    assert second.config_skipped_reason == "already exists"
    assert (project / CONFIG_FILENAME).read_text() == config_before


def test_existing_config_is_kept(make_project, fake_runner):
    project = make_project({"name": "demo"}, files={CONFIG_FILENAME: '{"riskTolerance": "high"}'})

    result = apply_setup(project, SetupOptions(package_manager="npm"), runner=fake_runner)

    assert read_json(project / CONFIG_FILENAME) == {"riskTolerance": "high"}
    assert not result.config_created


def test_skip_hooks_and_skip_config(make_project, fake_runner):
    project = make_project({"name": "demo"})

    result = apply_setup(
        project,
        SetupOptions(package_manager="pnpm", skip_hooks=True, skip_config=True),
        runner=fake_runner,
    )

    scripts = read_json(project / "package.json")["scripts"]
    assert "preinstall" not in scripts
    assert "postinstall" not in scripts
    assert "pdc:scan" in scripts
    assert not (project / CONFIG_FILENAME).exists()
    assert result.config_skipped_reason == "not requested"


def test_dependency_already_declared_is_not_added(make_project, fake_runner):
    project = make_project({"name": "demo", "dependencies": {"peer-dependency-checker": "^1.0.0"}})

    result = apply_setup(project, SetupOptions(package_manager="npm", skip_hooks=True), runner=fake_runner)

    assert not result.dev_dependency_added
    assert "devDependencies" not in read_json(project / "package.json")


def test_dry_run_writes_nothing(make_project, fake_runner):
    project = make_project({"name": "demo"})
    before = (project / "package.json").read_text()

    result = apply_setup(project, SetupOptions(package_manager="npm", dry_run=True), runner=fake_runner)

    assert (project / "package.json").read_text() == before
    assert not (project / CONFIG_FILENAME).exists()
    assert result.manifest_changed
    assert result.config_created
    assert result.smoke_test_passed is None
    assert fake_runner.calls == []


def test_failed_smoke_test_is_reported_without_rollback(make_project, fake_runner):
    project = make_project({"name": "demo"})

    result = apply_setup(project, SetupOptions(package_manager="bun"), runner=fake_runner)

    assert result.smoke_test_passed is False
    assert result.install_hint == "bun add --dev peer-dependency-checker"
    assert fake_runner.calls == [("pdc", "--version"), ("npx", "pdc", "--version")]
    assert "pdc:scan" in read_json(project / "package.json")["scripts"]


def test_missing_manifest_raises(tmp_path, fake_runner):
    with pytest.raises(ManifestNotFoundError):
        apply_setup(tmp_path, runner=fake_runner)


def test_non_object_scripts_is_rejected_before_writing(make_project, fake_runner):
    project = make_project({"name": "demo", "scripts": ["build"]})
    before = (project / "package.json").read_text()

    with pytest.raises(ValueError, match='"scripts" in package.json must be an object'):
        apply_setup(project, SetupOptions(package_manager="npm"), runner=fake_runner)

    assert (project / "package.json").read_text() == before
    assert not (project / CONFIG_FILENAME).exists()
