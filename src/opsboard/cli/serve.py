"""
Opsboard CLI - Serve command.

Run the dashboard API server.
"""

import logging
import threading
import time
import webbrowser

import typer
from rich.console import Console

from opsboard.core.config import load_config

console = Console()
logger = logging.getLogger(__name__)


def serve(
    ctx: typer.Context,
    port: int | None = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to run the server on (default from config, 8080)",
    ),
    host: str | None = typer.Option(
        None,
        "--host",
        help="Address to bind (default from config, 127.0.0.1)",
    ),
    no_browser: bool = typer.Option(
        False,
        "--no-browser",
        help="Don't open browser automatically",
    ),
) -> None:
    """
    Run the dashboard API server.

    Examples:
        opsboard serve                  # Serve on 127.0.0.1:8080
        opsboard serve --port 3000      # Serve on port 3000
        opsboard serve --no-browser     # Don't open browser
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    try:
        import uvicorn

        from opsboard.core.dashboard.api.app import create_app

        config = load_config()
        bind_host = host or config.dashboard.host
        bind_port = port or config.dashboard.port

        if debug:
            console.print(f"[dim]Database: {config.dashboard.db_path}[/dim]")
            console.print(f"[dim]GitHub: {config.github.org}/{config.github.repo}[/dim]")

        if not config.github.token:
            console.print(
                "[yellow]Warning:[/yellow] GITHUB_TOKEN not set, GitHub views will report "
                "GITHUB_NOT_CONFIGURED"
            )

        fastapi_app = create_app(config)

        display_host = "localhost" if bind_host in ("127.0.0.1", "0.0.0.0") else bind_host
        url = f"http://{display_host}:{bind_port}"
        console.print("\n[bold cyan]Starting opsboard server...[/bold cyan]")
        console.print(f"[dim]API: {url}/api/github[/dim]")
        console.print(f"[dim]Docs: {url}/docs[/dim]")

        if not no_browser:
            def open_browser() -> None:
                time.sleep(1.5)  # Wait for server to start
                console.print(f"\n[green]Opening browser:[/green] {url}/docs")
                webbrowser.open(f"{url}/docs")

            threading.Thread(target=open_browser, daemon=True).start()

        console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

        uvicorn.run(
            fastapi_app,
            host=bind_host,
            port=bind_port,
            log_level="info" if debug else "warning",
        )

    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        logger.debug("Server failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
