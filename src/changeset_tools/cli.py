"""Command line interface for changeset tools."""

import sys
import atexit
import logging
import argparse
from rich.console import Console
from rich.logging import RichHandler

from changeset_tools.commands import EXIT_FAILED, run_apply, run_preview, run_format_xml
from changeset_tools.menu import display_main_menu
from changeset_tools.utils import read_from_clipboard
from changeset_tools.webui import start_webui, stop_webui, get_webui_url

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr through rich, DEBUG with --verbose and WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the --file / --clipboard choice of XML source."""
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        '--file', '-f',
        metavar='PATH',
        help='Read the XML from a file (default: stdin)'
    )
    source.add_argument(
        '--clipboard', '-c',
        action='store_true',
        help='Read the XML from the clipboard'
    )


def read_xml_input(args) -> str:
    """Read the XML document from the source chosen on the command line."""
    if args.clipboard:
        return read_from_clipboard()
    if args.file:
        with open(args.file, 'r', encoding='utf-8') as f:
            return f.read()
    return sys.stdin.read()


def build_parser() -> argparse.ArgumentParser:
    """Set up the command-line argument parser."""
    parser = argparse.ArgumentParser(description='Apply LLM-generated change-sets to a repository')
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show debug logging'
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Apply command
    apply_parser = subparsers.add_parser('apply', help='Apply a change-set to a repository')
    add_input_arguments(apply_parser)
    apply_parser.add_argument(
        '--repo-path', '-r',
        help='Project directory (default: settings or current directory)'
    )
    apply_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate every change without touching the filesystem'
    )
    apply_parser.add_argument(
        '--no-format',
        action='store_true',
        help='Write file contents exactly as given'
    )
    apply_parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON'
    )

    # Preview command
    preview_parser = subparsers.add_parser('preview', help='Show what a change-set would do')
    add_input_arguments(preview_parser)
    preview_parser.add_argument(
        '--repo-path', '-r',
        help='Project directory (default: settings or current directory)'
    )

    # Format command
    format_parser = subparsers.add_parser('format-xml', help='Repair a change-set document')
    add_input_arguments(format_parser)
    format_parser.add_argument(
        '--copy',
        action='store_true',
        help='Copy the repaired document to the clipboard instead of printing it'
    )

    # WebUI command
    webui_parser = subparsers.add_parser('webui', help='Start the web UI')
    webui_parser.add_argument(
        '--host',
        help='Host to bind to (default: from settings)'
    )
    webui_parser.add_argument(
        '--port',
        type=int,
        help='Port to bind to (default: from settings)'
    )
    webui_parser.add_argument(
        '--debug',
        action='store_true',
        help='Run the web UI in debug mode'
    )
    webui_parser.add_argument(
        '--no-browser',
        action='store_true',
        help='Do not automatically open the browser'
    )
    webui_parser.add_argument(
        '--background',
        action='store_true',
        help='Run the web UI in background mode (non-blocking)'
    )
    return parser


def main(argv=None) -> int:
    """Run the CLI application."""
    # Register shutdown function to ensure WebUI is stopped
    atexit.register(stop_webui)

    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.command == 'apply':
            return run_apply(
                read_xml_input(args),
                repo_path=args.repo_path,
                dry_run=args.dry_run,
                no_format=args.no_format,
                as_json=args.json,
            )
        elif args.command == 'preview':
            return run_preview(read_xml_input(args), repo_path=args.repo_path)
        elif args.command == 'format-xml':
            return run_format_xml(read_xml_input(args), copy=args.copy)
        elif args.command == 'webui':
            block = not args.background
            console.print("[bold green]Starting WebUI...[/bold green]")
            start_webui(debug=args.debug, open_browser=not args.no_browser, block=block,
                        host=args.host, port=args.port)
            if not block:
                console.print(f"[green]WebUI is running at {get_webui_url()}[/green]")
                console.print("[cyan]The WebUI will remain active until you exit this program.[/cyan]")
                console.print("[cyan]You can continue using the CLI while the WebUI is running.[/cyan]")
                display_main_menu()
            return 0
        else:
            # No command specified, show the interactive menu
            display_main_menu()
            return 0
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Process cancelled by user.[/bold yellow]")
        return EXIT_FAILED
    except Exception as e:
        console.print(f"[bold red]Error: {str(e)}[/bold red]")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
