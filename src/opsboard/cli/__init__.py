"""
Opsboard CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from rich.console import Console

from opsboard import __version__
from opsboard.cli import github, serve
from opsboard.core.config.env import load_layered_env

app = typer.Typer(
    name="opsboard",
    help="Operations dashboard backend with a rate-limit-aware GitHub cache",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"opsboard version {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show opsboard version and exit",
    ),
) -> None:
    """
    Opsboard - operations dashboard backend.

    Examples:
        opsboard serve               # Run the API server
        opsboard github status       # Check the GitHub rate-limit budget
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    if debug:
        logging.basicConfig(level=logging.DEBUG)
        console.print("[dim]Debug mode enabled[/dim]")

    ctx.obj = {"debug": debug}


app.command(name="serve")(serve.serve)
app.add_typer(github.app, name="github")


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
