"""WebUI module for changeset tools."""

import threading
import webbrowser
import subprocess
from flask import Flask
from flask_socketio import SocketIO
from rich.console import Console

from changeset_tools.utils.settings import load_settings, save_settings

console = Console()
app = Flask(__name__)
app.config['SECRET_KEY'] = 'changeset-tools'
socketio = SocketIO(app)

# Global variables to track WebUI state
_webui_thread = None
_webui_running = False
_webui_host = '127.0.0.1'
_webui_port = 5000
_state_lock = threading.Lock()


def is_running_in_wsl():
    """Check if we're running in Windows Subsystem for Linux."""
    try:
        with open('/proc/version', 'r') as f:
            return 'microsoft' in f.read().lower()
    except OSError:
        return False


def open_url_in_browser(url):
    """
    Open URL in browser, with special handling for WSL.

    Args:
        url: The URL to open

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        if is_running_in_wsl():
            # Use the Windows browser through powershell
            subprocess.run(["powershell.exe", "-Command", f"Start-Process '{url}'"], check=False)
        else:
            webbrowser.open(url)
        return True
    except Exception as e:
        console.print(f"[yellow]Could not open browser: {e}[/yellow]")
        console.print(f"[cyan]Please manually open {url} in your browser[/cyan]")
        return False


def start_webui(debug=False, open_browser=True, block=False, host=None, port=None):
    """
    Start the WebUI server in a background thread.

    Args:
        debug: Whether to run the server in debug mode
        open_browser: Whether to open the browser automatically
        block: Whether to block and wait for the server to finish (CLI mode) or
               return control to the caller (background mode)
        host: Host to bind to (overrides settings)
        port: Port to bind to (overrides settings)
    """
    global _webui_thread, _webui_running, _webui_host, _webui_port

    settings = load_settings()
    _webui_host = host if host is not None else settings['host']
    _webui_port = port if port is not None else settings['port']

    with _state_lock:
        if _webui_running:
            console.print("[yellow]WebUI is already running![/yellow]")
            return
        _webui_running = True

    def run_server():
        global _webui_running

        console.print(f"[green]Starting WebUI at http://{_webui_host}:{_webui_port}/[/green]")
        socketio.run(app, host=_webui_host, port=_webui_port, debug=debug,
                     use_reloader=False, allow_unsafe_werkzeug=True)

        _webui_running = False
        console.print("[yellow]WebUI server has stopped[/yellow]")

    # Daemon thread so the server exits with the main program
    _webui_thread = threading.Thread(target=run_server, daemon=True)
    _webui_thread.start()

    if open_browser:
        open_url_in_browser(get_webui_url())

    if block:
        try:
            while _webui_running and _webui_thread.is_alive():
                _webui_thread.join(1)
        except KeyboardInterrupt:
            console.print("[yellow]WebUI interrupted. Shutting down...[/yellow]")
            stop_webui()


def stop_webui():
    """Stop the WebUI server."""
    global _webui_running

    if not _webui_running:
        return

    console.print("[yellow]Shutting down WebUI...[/yellow]")
    # The daemon thread exits with the main program
    _webui_running = False


def update_port(new_port):
    """Update the server port.

    The port is saved for future server starts; a running server keeps its
    current port until restarted.

    Args:
        new_port: The new port number

    Returns:
        tuple: (success, message, restart_required)
    """
    global _webui_port

    try:
        port = int(new_port)
    except (TypeError, ValueError):
        return False, "Port must be a valid number", False
    if port < 1024 or port > 65535:
        return False, "Port must be between 1024 and 65535", False

    if port == _webui_port:
        return True, "Port unchanged", False

    _webui_port = port
    save_settings({'port': port})

    restart_needed = is_webui_running()
    return True, f"Port updated to {port}. Changes will take effect after restart.", restart_needed


def is_webui_running():
    """Check if the WebUI is currently running."""
    return _webui_running


def get_webui_url():
    """Get the URL of the WebUI."""
    return f"http://{_webui_host}:{_webui_port}/"


def get_webui_port():
    """Get the current WebUI port."""
    return _webui_port


# Import routes after defining app and socketio to avoid circular imports
from changeset_tools.webui import routes  # noqa: E402,F401
