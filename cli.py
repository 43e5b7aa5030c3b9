"""CLI entry point for the forwarding proxy."""

import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from core.config import ENV_VARS, SERVER_ENV_VARS, Config, load_config
from core.exceptions import SettingsError
from services.forwarding_service import validate_config
from ui.dashboard import Dashboard
from ui.log_utils import mask_secret, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    try:
        config = load_config()
    except SettingsError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--check":
            sys.exit(0 if print_config_status(config) else 1)

        if arg == "--config":
            _print_config(config)
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    # Missing backend settings are reported per request, not fatal
    print_config_status(config)

    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",
        timeout_keep_alive=config.server.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.server.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def print_config_status(config: Config) -> bool:
    """Print whether the proxy can forward requests; return True if it can."""
    error = validate_config(config.proxy)
    if error is None:
        console.print(f"[green]Ready[/green] forwarding to {config.proxy.backend_base_url}")
        return True
    console.print(f"[yellow]Warning:[/yellow] {error.message}")
    console.print("[dim]Requests will fail with status 500 until this is fixed.[/dim]")
    return False


def _print_config(config: Config) -> None:
    proxy = config.proxy
    values = {
        "backend_base_url": proxy.backend_base_url or "[dim]not set[/dim]",
        "shared_secret_key": mask_secret(proxy.shared_secret_key) if proxy.shared_secret_key else "[dim]not set[/dim]",
        "shared_secret_header": proxy.shared_secret_header,
        "forwarded_header_denylist": ", ".join(sorted(proxy.forwarded_header_denylist)),
        "include_error_details": str(proxy.include_error_details),
        "upstream_timeout": str(proxy.upstream_timeout),
    }
    for field, names in ENV_VARS.items():
        console.print(f"[bold]{' / '.join(names)}:[/bold] {values[field]}")
    for field, name in SERVER_ENV_VARS.items():
        console.print(f"[bold]{name}:[/bold] {getattr(config.server, field)}")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Forwarding Proxy[/bold cyan]

Forwards /proxy/* to BACKEND_BASE_URL, injecting the shared secret header.

[bold]Usage:[/bold]
    forward-proxy              Start with live dashboard
    forward-proxy --check      Check backend settings
    forward-proxy --config     Show effective settings
    forward-proxy --help       Show this help

[bold]Environment:[/bold]
    BACKEND_BASE_URL           Absolute URL of the backend (required)
    SHARED_SECRET_KEY          Secret sent to the backend (required)
    SHARED_SECRET_HEADER       Header carrying the secret (x-functions-key)
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
