import json
import logging
from pathlib import Path

import pytest

from peer_dependency_checker.process import CommandFailure, CommandOutput


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("peer_dependency_checker")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


class FakeRunner:
    """Answers commands from a table of canned results and records every call."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def run(self, command, timeout=None, cwd=None):
        key = tuple(command.split()) if isinstance(command, str) else tuple(command)
        self.calls.append(key)
        if key in self.responses:
            return self.responses[key]
        return CommandFailure(reason=f"could not run {key[0]}: not found")


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def ok():
    def _ok(output="", stderr=""):
        return CommandOutput(output=output, stderr=stderr)
    return _ok


@pytest.fixture
def failed():
    def _failed(stdout="", stderr="", returncode=1):
        return CommandFailure(
            reason=f"exited with status {returncode}",
            stdout=stdout,
            stderr=stderr,
            returncode=returncode,
        )
    return _failed


@pytest.fixture
def make_project(tmp_path: Path):
    """Write a package.json (and optional extra files) into a temp project."""

    def _make(manifest=None, files=None):
        if manifest is not None:
            (tmp_path / "package.json").write_text(json.dumps(manifest, indent=2) + "\n")
        for name, content in (files or {}).items():
            (tmp_path / name).write_text(content)
        return tmp_path

    return _make
