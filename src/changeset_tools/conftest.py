"""Shared pytest fixtures."""

import pytest


@pytest.fixture(autouse=True)
def settings_home(tmp_path, monkeypatch):
    """Keep settings.json out of the real home directory."""
    home = tmp_path / "settings"
    monkeypatch.setenv("CHANGESET_TOOLS_HOME", str(home))
    return home


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root
