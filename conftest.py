"""Pytest configuration and fixtures for docrefresh tests.

CRITICAL: Protects the user's configuration and never runs real PowerShell.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point ConfigManager at a temporary directory instead of ~/.docrefresh.

    Example:
        def test_something(isolated_config):
            config_path = isolated_config / "config.toml"
            # Safe to modify - it's in tmp_path
    """
    from docrefresh.config_manager import ConfigManager

    config_dir = tmp_path / ".docrefresh"
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
    return config_dir


@pytest.fixture(autouse=True)
def prevent_real_powershell(monkeypatch):
    """Fail loudly if a test reaches a real pwsh process.

    Tests that exercise PowerShellService patch subprocess.run themselves;
    their patch replaces this guard for the duration of the test.
    """

    def _guard(*args, **kwargs):
        raise RuntimeError(f"Real PowerShell invoked in tests: {args!r}")

    monkeypatch.setattr("docrefresh.powershell_service.subprocess.run", _guard)
