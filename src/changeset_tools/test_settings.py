"""Tests for persistent settings."""

import json

from changeset_tools.utils.settings import (
    DEFAULT_SETTINGS,
    get_settings_file,
    load_settings,
    save_settings,
)


def test_defaults_without_settings_file(settings_home):
    assert load_settings() == DEFAULT_SETTINGS
    assert not settings_home.exists()


def test_settings_file_follows_environment(settings_home):
    assert get_settings_file() == str(settings_home / "settings.json")


def test_save_then_load(settings_home):
    saved = save_settings({"port": 5055, "auto_format": False})
    assert saved["port"] == 5055

    loaded = load_settings()
    assert loaded["port"] == 5055
    assert loaded["auto_format"] is False
    assert loaded["host"] == "127.0.0.1"


def test_unknown_keys_are_preserved(settings_home):
    settings_home.mkdir()
    (settings_home / "settings.json").write_text(json.dumps({"theme": "dark"}))

    save_settings({"default_repo_path": "/work/repo"})

    on_disk = json.loads((settings_home / "settings.json").read_text())
    assert on_disk["theme"] == "dark"
    assert on_disk["default_repo_path"] == "/work/repo"


def test_invalid_values_fall_back_to_defaults(settings_home):
    settings_home.mkdir()
    (settings_home / "settings.json").write_text(json.dumps({
        "port": 80,
        "auto_format": "yes",
        "host": "",
        "default_repo_path": 42,
    }))

    assert load_settings() == DEFAULT_SETTINGS


def test_corrupt_file_is_ignored(settings_home):
    settings_home.mkdir()
    (settings_home / "settings.json").write_text("{broken")
    assert load_settings() == DEFAULT_SETTINGS
