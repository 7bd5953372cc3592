"""Actions shared by the CLI subcommands and the interactive menu."""

import os
import json
import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from changeset_tools.modules import (
    XMLParserError,
    DefaultFormatter,
    NullFormatter,
    parse_xml_string,
    prepare_xml,
    validate_xml_structure,
    apply_changes,
    preview_changes,
)
from changeset_tools.utils import (
    copy_to_clipboard,
    load_settings,
    show_toast,
    show_apply_result,
    show_preview,
)

logger = logging.getLogger(__name__)
console = Console()

# Exit statuses
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARSE_ERROR = 2


def resolve_repo_path(repo_path: Optional[str] = None) -> str:
    """Pick the project root from the argument, the settings or the current directory."""
    return os.path.abspath(repo_path or load_settings()['default_repo_path'] or os.getcwd())


def make_formatter(no_format: bool = False):
    """Build the formatter for one run, honoring --no-format and the auto_format setting."""
    if no_format or not load_settings()['auto_format']:
        return NullFormatter()
    return DefaultFormatter()


def _report_parse_error(error: XMLParserError) -> int:
    logger.error(f"Failed to parse change-set: {error}")
    console.print(f"[bold red]{escape(str(error))}[/bold red]")
    return EXIT_PARSE_ERROR


def run_apply(xml_content: str, repo_path: Optional[str] = None, dry_run: bool = False,
              no_format: bool = False, as_json: bool = False) -> int:
    """
    Parse and apply a change-set document.

    Returns:
        int: 0 when at least one change was applied, 1 when none was, 2 when
        the document could not be parsed
    """
    try:
        changes = parse_xml_string(xml_content)
    except XMLParserError as e:
        if as_json:
            console.print_json(json.dumps({"success": False, "error": str(e)}))
            return EXIT_PARSE_ERROR
        return _report_parse_error(e)

    root = resolve_repo_path(repo_path)
    if dry_run:
        show_toast(f"Dry run against {root}: no files will be written", style="cyan")

    result = apply_changes(changes, root, test_mode=dry_run, formatter=make_formatter(no_format))

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
    else:
        show_apply_result(result)
    return EXIT_OK if result.success else EXIT_FAILED


def run_preview(xml_content: str, repo_path: Optional[str] = None) -> int:
    """Print what applying the document would do."""
    try:
        changes = parse_xml_string(xml_content)
    except XMLParserError as e:
        return _report_parse_error(e)

    show_preview(preview_changes(changes, resolve_repo_path(repo_path)))
    return EXIT_OK


def run_format_xml(xml_content: str, copy: bool = False) -> int:
    """Repair the document and print or copy the result."""
    if not xml_content or not xml_content.strip():
        console.print("[bold red]Empty or null XML input[/bold red]")
        return EXIT_PARSE_ERROR

    repaired = prepare_xml(xml_content)
    is_valid, error_message = validate_xml_structure(xml_content)

    if copy:
        copy_to_clipboard(repaired)
        show_toast("Repaired XML copied to clipboard!")
    else:
        console.print(Syntax(repaired, "xml", word_wrap=True))

    if not is_valid:
        console.print(f"[yellow]The repaired document still does not parse:[/yellow]\n{escape(error_message)}")
        return EXIT_PARSE_ERROR
    return EXIT_OK
