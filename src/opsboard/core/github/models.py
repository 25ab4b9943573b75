"""
GitHub data models for opsboard.

Pydantic models for the cache status surface and for the dashboard views
built from GitHub data (project board, issues, pull requests, pipeline).
Models serialize with camelCase aliases to match the dashboard frontend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from opsboard.core.github.ratelimit import RateLimitSnapshot


def to_iso(epoch_seconds: float) -> str:
    """Format epoch seconds as an ISO 8601 UTC timestamp with milliseconds."""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    """Base model that accepts field names and emits camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LastErrorInfo(CamelModel):
    """Most recent GitHub failure as reported by the status endpoint."""

    message: str = Field(..., description="Error message")
    at: str = Field(..., description="When the error occurred (ISO 8601)")


class CacheStats(CamelModel):
    """
    Cache and rate-limit status.

    Example:
        >>> CacheStats(entries=3, rate_limit_remaining=4990).model_dump(by_alias=True)
        {'entries': 3, 'rateLimitRemaining': 4990, 'rateLimitReset': None, 'lastError': None}
    """

    entries: int = Field(default=0, ge=0, description="Number of cached keys")
    rate_limit_remaining: int = Field(default=0, ge=0, description="Calls left before reset")
    rate_limit_reset: str | None = Field(
        default=None, description="When the budget resets (ISO 8601), None if unknown"
    )
    last_error: LastErrorInfo | None = Field(default=None, description="Most recent failure")

    @classmethod
    def from_state(cls, entries: int, snapshot: RateLimitSnapshot) -> CacheStats:
        """
        Build stats from an entry count and a rate-limit snapshot.

        Args:
            entries: Number of cached keys
            snapshot: Rate-limit snapshot

        Returns:
            CacheStats instance
        """
        last_error = None
        if snapshot.last_error is not None:
            last_error = LastErrorInfo(
                message=snapshot.last_error.message,
                at=to_iso(snapshot.last_error.occurred_at),
            )
        return cls(
            entries=entries,
            rate_limit_remaining=snapshot.remaining,
            rate_limit_reset=to_iso(snapshot.reset_at) if snapshot.reset_at > 0 else None,
            last_error=last_error,
        )


class Label(CamelModel):
    """Issue or pull request label."""

    name: str
    color: str = ""


class Assignee(CamelModel):
    """Issue assignee."""

    login: str
    avatar_url: str = ""


class BoardCard(CamelModel):
    """A project board item backed by an issue or pull request."""

    id: str = Field(..., description="Project item node ID")
    number: int | None = Field(default=None, description="Issue or PR number")
    title: str = Field(default="", description="Issue or PR title")
    state: str = Field(default="", description="Issue or PR state")
    url: str = Field(default="", description="HTML URL")
    body: str = Field(default="", description="Issue body (markdown)")
    labels: list[Label] = Field(default_factory=list)
    assignees: list[Assignee] = Field(default_factory=list)
    priority: str = Field(default="", description="Priority single-select value")
    assignee: str = Field(default="", description="Owner single-select value")
    created_at: str | None = None
    updated_at: str | None = None


class Board(CamelModel):
    """Project board grouped into status columns."""

    title: str = Field(default="Board", description="Project title")
    columns: dict[str, list[BoardCard]] = Field(default_factory=dict)
    total_items: int = Field(default=0, ge=0, description="Items returned by GitHub")


class GitHubIssue(CamelModel):
    """
    A GitHub issue as returned by the REST issues endpoint.
    """

    number: int = Field(..., description="Issue number")
    title: str = Field(..., description="Issue title")
    body: str = Field(default="", description="Issue body (markdown)")
    state: str = Field(default="open", description="Issue state (open/closed)")
    labels: list[str] = Field(default_factory=list, description="Label names")
    assignees: list[str] = Field(default_factory=list, description="Assignee logins")
    url: str = Field(default="", description="HTML URL for the issue")
    is_pull_request: bool = Field(default=False, description="REST lists PRs as issues")
    created_at: str | None = None
    updated_at: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_open(self) -> bool:
        """Check if issue is open."""
        return self.state == "open"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GitHubIssue:
        """
        Create GitHubIssue from a REST API response item.

        Args:
            data: One element of ``GET /repos/{owner}/{repo}/issues``

        Returns:
            GitHubIssue instance
        """
        labels: list[str] = []
        for label in data.get("labels") or []:
            if isinstance(label, dict) and isinstance(label.get("name"), str):
                labels.append(label["name"])
            elif isinstance(label, str):
                labels.append(label)

        assignees = [
            a["login"]
            for a in data.get("assignees") or []
            if isinstance(a, dict) and isinstance(a.get("login"), str)
        ]

        number = data.get("number", 0)
        return cls(
            number=int(number) if isinstance(number, (int, float)) else 0,
            title=str(data.get("title") or ""),
            body=str(data.get("body") or ""),
            state=str(data.get("state") or "open"),
            labels=labels,
            assignees=assignees,
            url=str(data.get("html_url") or ""),
            is_pull_request="pull_request" in data,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class PullReview(CamelModel):
    """A review left on a pull request."""

    author: str | None = None
    state: str = ""


class PullRequestSummary(CamelModel):
    """A pull request from one of the organization's repositories."""

    repo: str
    number: int
    title: str = ""
    state: str = ""
    is_draft: bool = False
    created_at: str | None = None
    updated_at: str | None = None
    merged_at: str | None = None
    url: str = ""
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    author: str = "unknown"
    author_avatar: str = ""
    labels: list[Label] = Field(default_factory=list)
    review_decision: str | None = None
    reviews: list[PullReview] = Field(default_factory=list)
    branch: str = ""
    base_branch: str = ""


class PipelineReport(CamelModel):
    """A stage report file inside a pipeline item directory."""

    name: str
    url: str = ""
    stage: str


class PipelineGate(CamelModel):
    """Stage-gate decision for a pipeline item."""

    gate: int = Field(..., ge=1, le=5)
    status: str = Field(default="pending", description="'go' if a decision file exists")
    file: str = ""
    url: str = ""


class PipelineItem(CamelModel):
    """One business idea tracked through the stage-gate pipeline."""

    id: str
    name: str
    reports: list[PipelineReport] = Field(default_factory=list)
    gates: list[PipelineGate] = Field(default_factory=list)
    latest_stage: int = Field(default=0, ge=0, le=6)


__all__ = [
    "Assignee",
    "Board",
    "BoardCard",
    "CacheStats",
    "GitHubIssue",
    "Label",
    "LastErrorInfo",
    "PipelineGate",
    "PipelineItem",
    "PipelineReport",
    "PullRequestSummary",
    "PullReview",
    "to_iso",
]
