"""Command line entry point for directly launching the web UI."""

import sys
import time
import atexit
import logging
import argparse
from rich.console import Console
from rich.logging import RichHandler

from changeset_tools.webui import start_webui, stop_webui, is_webui_running, get_webui_url

console = Console()


def main(argv=None) -> int:
    """Run the web UI directly."""
    # Register shutdown function to ensure WebUI is stopped
    atexit.register(stop_webui)

    parser = argparse.ArgumentParser(description='Changeset Tools Web UI')
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Run the web UI in debug mode'
    )
    parser.add_argument(
        '--no-browser',
        action='store_true',
        help='Do not automatically open the browser'
    )
    parser.add_argument(
        '--background',
        action='store_true',
        help='Run the web UI in background mode (non-blocking)'
    )
    parser.add_argument(
        '--host',
        help='Host to bind to (default: from settings, 127.0.0.1)'
    )
    parser.add_argument(
        '--port',
        type=int,
        help='Port to bind to (default: from settings, 5000)'
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True))],
    )

    try:
        block = not args.background

        console.print("[bold green]Starting Changeset Tools Web UI...[/bold green]")
        start_webui(debug=args.debug, open_browser=not args.no_browser, block=block,
                    host=args.host, port=args.port)

        # If running in background mode, show URL and wait
        if not block and is_webui_running():
            console.print(f"[green]Web UI is running at {get_webui_url()}[/green]")
            console.print("[cyan]Press Ctrl+C to stop the server and exit.[/cyan]")

            try:
                # Keep the main thread alive while the web UI runs in the background
                while is_webui_running():
                    time.sleep(1)
            except KeyboardInterrupt:
                console.print("\n[bold yellow]Shutting down Web UI...[/bold yellow]")
                stop_webui()

        return 0

    except KeyboardInterrupt:
        console.print("\n[bold yellow]Process cancelled by user.[/bold yellow]")
        return 1
    except Exception as e:
        console.print(f"[bold red]Error: {str(e)}[/bold red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
