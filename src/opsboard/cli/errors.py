"""
Error messages and exit codes for the opsboard CLI.
"""

from enum import IntEnum

from rich.console import Console

from opsboard.core.github.errors import ErrorKind, GitHubError

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for opsboard CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """GitHub or server failure."""

    USER_ERROR = 2
    """Configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "GitHub token not configured",
        ...     solution="export GITHUB_TOKEN=ghp_...",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_github_error(error: GitHubError) -> None:
    """Print a friendly message for a GitHub failure."""
    if error.kind is ErrorKind.CONFIGURATION:
        print_error(
            "GitHub token not configured",
            reason=error.message,
            solution="export GITHUB_TOKEN=<token> or add it to .env",
        )
    elif error.kind is ErrorKind.AUTHENTICATION:
        print_error(
            "GitHub rejected the token",
            reason=error.message,
            solution="create a new token and update GITHUB_TOKEN",
        )
    elif error.kind is ErrorKind.RATE_LIMITED:
        print_error(
            "GitHub rate limit reached",
            reason=error.message,
            solution="wait for the budget to reset and try again",
        )
    else:
        print_error("GitHub request failed", reason=error.message)


__all__ = ["ExitCode", "console", "print_error", "print_github_error"]
