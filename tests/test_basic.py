"""Tests for the peer_dependency_checker package."""

import pytest


def test_package_import():
    """Test that the package can be imported."""
    import peer_dependency_checker
    assert peer_dependency_checker.__version__ == "1.0.1"


def test_cli_import():
    """Test that CLI module can be imported."""
    from peer_dependency_checker.cli import main
    assert callable(main)


def test_flow_modules_expose_main():
    """Both flow modules can also run on their own."""
    from peer_dependency_checker import peer_check, upgrade_check
    assert callable(peer_check.main)
    assert callable(upgrade_check.main)


def test_adapters_registered_for_every_package_manager():
    from peer_dependency_checker.config import PACKAGE_MANAGERS
    from peer_dependency_checker.managers import ADAPTERS

    assert set(ADAPTERS) == set(PACKAGE_MANAGERS)
    for name, adapter_cls in ADAPTERS.items():
        assert adapter_cls.name == name


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
