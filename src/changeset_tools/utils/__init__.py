"""Utilities package for changeset tools.

This package provides utility functions shared between CLI and WebUI components.
"""

# API version to track compatibility
__api_version__ = '1.0.0'

# Re-export the public APIs
from changeset_tools.utils.clipboard import copy_to_clipboard, read_from_clipboard
from changeset_tools.utils.notifications import show_toast, show_apply_result, show_preview
from changeset_tools.utils.settings import load_settings, save_settings
