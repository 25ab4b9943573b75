"""
Opsboard CLI - GitHub commands.

Inspect the GitHub connection used by the dashboard.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from opsboard.cli.errors import ExitCode, print_github_error
from opsboard.core.config import load_config
from opsboard.core.github.client import GitHubClient
from opsboard.core.github.errors import GitHubError

app = typer.Typer(
    name="github",
    help="Inspect the GitHub connection",
    no_args_is_help=True,
)

console = Console()

# Highlight buckets with fewer calls left than this
LOW_REMAINING = 10


async def _fetch_rate_limit() -> dict[str, Any]:
    config = load_config()
    async with GitHubClient(
        config.github.token,
        api_url=config.github.api_url,
        timeout=config.github.timeout_seconds,
    ) as client:
        return await client.rate_limit_status()


def _format_reset(epoch: Any) -> str:
    if not isinstance(epoch, (int, float)) or epoch <= 0:
        return "-"
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


@app.command()
def status() -> None:
    """
    Show the GitHub rate-limit budget for the configured token.

    Examples:
        opsboard github status
    """
    try:
        payload = asyncio.run(_fetch_rate_limit())
    except GitHubError as e:
        print_github_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    resources = payload.get("resources") if isinstance(payload, dict) else None
    if not isinstance(resources, dict):
        resources = {}

    table = Table(title="GitHub rate limits")
    table.add_column("Resource", style="cyan")
    table.add_column("Used", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Resets")

    for name in ("core", "graphql", "search"):
        bucket = resources.get(name)
        if not isinstance(bucket, dict):
            continue
        remaining = bucket.get("remaining")
        low = isinstance(remaining, (int, float)) and remaining < LOW_REMAINING
        style = "red" if low else "green"
        table.add_row(
            name,
            str(bucket.get("used", "-")),
            Text("-" if remaining is None else str(remaining), style=style),
            str(bucket.get("limit", "-")),
            _format_reset(bucket.get("reset")),
        )

    console.print(table)
