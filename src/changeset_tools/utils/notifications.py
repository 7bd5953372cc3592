"""Notification and summary output for changeset tools."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()


def show_toast(message: str, style: str = "bold green") -> None:
    """
    Show a toast notification.

    Args:
        message: The message to display.
        style: Rich style for the message.
    """
    console.print(f"[{style}]{message}[/{style}]")


def show_apply_result(result) -> None:
    """
    Print an ApplyResult as a panel with updated and failed file tables.

    Args:
        result: The ApplyResult returned by the orchestrator.
    """
    style = "green" if result.success else "red"
    console.print(Panel(result.message, title="Apply", border_style=style))

    if result.updated_files:
        table = Table(title="Updated files", show_header=False)
        table.add_column("Path", style="green")
        for path in result.updated_files:
            table.add_row(escape(path))
        console.print(table)

    if result.failed_files:
        table = Table(title="Failed files")
        table.add_column("Path", style="red")
        table.add_column("Reason")
        for failed in result.failed_files:
            table.add_row(escape(failed.path), escape(failed.reason))
        console.print(table)

    if result.warning_message:
        show_toast(result.warning_message, style="yellow")


def show_preview(previews) -> None:
    """Print the output of preview_changes as a table."""
    if not previews:
        show_toast("No file changes found in XML", style="yellow")
        return

    table = Table(title="Preview")
    table.add_column("Operation", style="cyan")
    table.add_column("Path")
    table.add_column("Exists")
    table.add_column("Notes")

    for preview in previews:
        exists = preview.get("file_exists")
        notes = preview.get("error") or preview.get("warning") or preview.get("operation_desc", "")
        table.add_row(
            preview["operation"],
            escape(preview["path"]),
            "-" if exists is None else ("yes" if exists else "no"),
            f"[red]{escape(notes)}[/red]" if "error" in preview else escape(notes),
        )
    console.print(table)
