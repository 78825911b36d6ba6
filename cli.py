"""CLI entry point for authgate-proxy."""

import logging
import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from core.config import Config, config_file_path, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import CLI_LOG_FILE, FileRequestLogger, clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    args = sys.argv[1:]

    if "--help" in args or "-h" in args:
        _print_help()
        return

    if "--config" in args:
        console.print(f"[bold]Config:[/bold] {config_file_path()}")
        console.print(f"[bold]Log:[/bold] {CLI_LOG_FILE}")
        return

    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    if "--check" in args:
        ok = print_config_status(config)
        sys.exit(0 if ok else 1)

    if not config.upstream.origin:
        console.print("[yellow]Warning:[/yellow] API_BASE not set; every request will return 500")

    logging.basicConfig(level=getattr(logging, config.proxy.log_level.upper(), logging.INFO))

    import uvicorn

    clear_logs()
    headless = "--headless" in args
    request_logger = FileRequestLogger() if headless else Dashboard(config)
    app = create_app(config, request_logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="info" if headless else "warning",
    )
    server = uvicorn.Server(uvicorn_config)

    if isinstance(request_logger, Dashboard):
        request_logger.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        if isinstance(request_logger, Dashboard):
            request_logger.stop()


def print_config_status(config: Config) -> bool:
    """Print a configuration summary; return False when the proxy cannot serve."""
    ok = True
    if config.upstream.origin:
        console.print(f"[green]Upstream[/green] {config.upstream.origin}")
    else:
        console.print("[red]Upstream not configured[/red] (set API_BASE)")
        ok = False

    console.print(f"[bold]Mount:[/bold] {config.proxy.mount_path or '/'}")
    console.print(f"[bold]Protected:[/bold] {', '.join(config.proxy.protected_paths)}")
    policy = "forwarded" if config.upstream.forward_authorization else "stripped"
    console.print(f"[bold]Authorization header:[/bold] {policy}")

    if config.cors.mode == "allowlist":
        console.print(f"[bold]CORS:[/bold] allow-list ({', '.join(sorted(config.cors.allowed_origins))})")
    else:
        console.print("[bold]CORS:[/bold] open")

    if config.auth.verifier_url:
        console.print(f"[green]Identity verifier[/green] {config.auth.verifier_url}")
    else:
        console.print("[yellow]Identity verifier not configured[/yellow] (protected calls will return 500)")

    if config.quota.enabled:
        counter = config.quota.counter_url or "[yellow]no counter, fails open[/yellow]"
        console.print(f"[bold]Quota:[/bold] {config.quota.daily_limit}/day via {counter}")
    else:
        console.print("[dim]Quota disabled[/dim]")

    sink = config.audit.sink_url or str(config.audit.log_dir)
    console.print(f"[bold]Audit:[/bold] {sink}")
    return ok


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Auth Gate Proxy[/bold cyan]

Authenticating reverse proxy in front of a single upstream (API_BASE).

[bold]Usage:[/bold]
    authgate-proxy              Start with live dashboard
    authgate-proxy --headless   Start without the dashboard
    authgate-proxy --check      Validate configuration
    authgate-proxy --config     Show config and log locations
    authgate-proxy --help       Show this help

[bold]Configuration:[/bold]
    Environment variables override ~/.config/authgate-proxy/config.json
    (or the file named by AUTHGATE_CONFIG_FILE).
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
