"""Clipboard utilities for changeset tools."""

import pyperclip


def copy_to_clipboard(text: str) -> None:
    """
    Copy text to clipboard.

    Args:
        text: The text to copy.
    """
    pyperclip.copy(text)


def read_from_clipboard() -> str:
    """
    Read the current clipboard text.

    Returns:
        The clipboard content, or an empty string when it holds no text.
    """
    return pyperclip.paste() or ""
