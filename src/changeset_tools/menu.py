"""Menu system for changeset tools."""

import os
import inquirer
from rich.console import Console
from rich.align import Align
from rich.text import Text

from changeset_tools.commands import run_apply, run_preview, run_format_xml, resolve_repo_path
from changeset_tools.utils import read_from_clipboard
from changeset_tools.webui import start_webui, stop_webui, get_webui_url

console = Console()


def clear_screen():
    """Clear the terminal screen."""
    os.system('cls' if os.name == 'nt' else 'clear')


def _clipboard_xml():
    """Read the change-set from the clipboard, or None when it is empty."""
    xml_content = read_from_clipboard()
    if not xml_content.strip():
        console.print("[yellow]The clipboard is empty. Copy the LLM's XML reply first.[/yellow]")
        return None
    return xml_content


def _ask_repo_path():
    answers = inquirer.prompt([
        inquirer.Path(
            "repo_path",
            message="Project directory",
            default=resolve_repo_path(),
            path_type=inquirer.Path.DIRECTORY,
            exists=True,
        ),
    ])
    return answers["repo_path"] if answers else None


def _confirm(message):
    answers = inquirer.prompt([inquirer.Confirm("ok", message=message, default=True)])
    return bool(answers and answers["ok"])


def display_main_menu() -> None:
    """Display the main menu and handle user selection."""
    try:
        while True:
            # Clear screen for full-screen effect
            clear_screen()

            title = Text("CHANGESET TOOLS", style="bold cyan")
            console.print(Align.center(title, vertical="middle"))
            console.print()

            questions = [
                inquirer.List(
                    "module",
                    message="Select an action (the change-set is read from the clipboard)",
                    choices=[
                        ("Preview clipboard change-set", "preview"),
                        ("Apply clipboard change-set", "apply"),
                        ("Dry-run clipboard change-set", "dry_run"),
                        ("Repair clipboard XML", "format_xml"),
                        ("Start WebUI", "webui"),
                        ("Exit", "exit"),
                    ],
                    carousel=True,  # Allow wrap-around navigation
                    default="preview",
                ),
            ]

            answers = inquirer.prompt(questions)

            if not answers:  # User pressed Ctrl+C
                break

            module = answers["module"]

            if module == "exit":
                console.print("[yellow]Exiting...[/yellow]")
                break

            clear_screen()

            if module in ("preview", "apply", "dry_run"):
                xml_content = _clipboard_xml()
                repo_path = _ask_repo_path() if xml_content else None
                if repo_path:
                    if module == "preview":
                        run_preview(xml_content, repo_path=repo_path)
                    elif module == "dry_run":
                        run_apply(xml_content, repo_path=repo_path, dry_run=True)
                    elif _confirm(f"Write the changes to {repo_path}?"):
                        run_apply(xml_content, repo_path=repo_path)
            elif module == "format_xml":
                xml_content = _clipboard_xml()
                if xml_content:
                    run_format_xml(xml_content, copy=True)
            elif module == "webui":
                console.print("[bold green]Starting WebUI...[/bold green]")
                # Start WebUI in background mode (non-blocking)
                start_webui(debug=False, open_browser=True, block=False)
                console.print(f"[green]WebUI is running at {get_webui_url()}[/green]")
                console.print("[cyan]The WebUI will remain active until you exit the program.[/cyan]")
                console.print("[cyan]You can continue using the CLI while the WebUI is running.[/cyan]")
            else:
                console.print(f"[red]Unknown module: {module}[/red]")

            # Pause for user to see results
            console.print("\n[cyan]Press Enter to continue...[/cyan]")
            input()
    finally:
        stop_webui()
