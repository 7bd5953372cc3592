"""Persistent settings for changeset tools."""

import os
import json
from typing import Any, Dict, Optional

from rich.console import Console

console = Console()

SETTINGS_HOME_ENV = 'CHANGESET_TOOLS_HOME'

DEFAULT_SETTINGS: Dict[str, Any] = {
    'port': 5000,
    'host': '127.0.0.1',
    'auto_format': True,
    'default_repo_path': None,
}


def get_settings_dir() -> str:
    """Directory holding settings.json (``~/.changeset_tools`` by default)."""
    return os.environ.get(SETTINGS_HOME_ENV) or os.path.join(os.path.expanduser('~'), '.changeset_tools')


def get_settings_file() -> str:
    return os.path.join(get_settings_dir(), 'settings.json')


def _ensure_settings_dir():
    """Ensure settings directory exists."""
    os.makedirs(get_settings_dir(), exist_ok=True)


def _validated(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Replace invalid values with their defaults."""
    try:
        port = int(settings.get('port', DEFAULT_SETTINGS['port']))
        if not 1024 <= port <= 65535:
            raise ValueError(f"port {port} out of range")
        settings['port'] = port
    except (TypeError, ValueError) as e:
        console.print(f"[yellow]Invalid port in settings ({e}), using {DEFAULT_SETTINGS['port']}[/yellow]")
        settings['port'] = DEFAULT_SETTINGS['port']

    if not isinstance(settings.get('auto_format'), bool):
        settings['auto_format'] = DEFAULT_SETTINGS['auto_format']
    if not isinstance(settings.get('host'), str) or not settings['host']:
        settings['host'] = DEFAULT_SETTINGS['host']

    repo_path = settings.get('default_repo_path')
    if repo_path is not None and not isinstance(repo_path, str):
        settings['default_repo_path'] = None

    return settings


def load_settings() -> Dict[str, Any]:
    """Load settings from disk, filling in defaults for missing keys."""
    settings = dict(DEFAULT_SETTINGS)
    settings_file = get_settings_file()

    if os.path.exists(settings_file):
        try:
            with open(settings_file, 'r') as f:
                settings.update(json.load(f))
        except (json.JSONDecodeError, ValueError, IOError) as e:
            console.print(f"[yellow]Error loading settings: {e}[/yellow]")

    return _validated(settings)


def save_settings(updates: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Save settings to disk.

    Keys already in the file that this version does not know are kept.

    Args:
        updates: Settings to change. If None, the current settings are rewritten.

    Returns:
        The settings as saved
    """
    _ensure_settings_dir()
    settings_file = get_settings_file()

    current_settings = {}
    if os.path.exists(settings_file):
        try:
            with open(settings_file, 'r') as f:
                current_settings = json.load(f)
        except (json.JSONDecodeError, IOError):
            pass  # Start with empty settings if file can't be loaded

    settings = dict(DEFAULT_SETTINGS)
    settings.update(current_settings)
    if updates:
        settings.update(updates)
    settings = _validated(settings)

    try:
        with open(settings_file, 'w') as f:
            json.dump(settings, f, indent=2)
    except IOError as e:
        console.print(f"[yellow]Error saving settings: {e}[/yellow]")

    return settings
