"""
Configuration data models for opsboard.

These models define the structure of .opsboard.json and
~/.config/opsboard/config.json files, with validation and type safety via
Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GitHubConfig(BaseModel):
    """
    GitHub API access and the repositories the dashboard reads.

    The token is optional so the dashboard can start without one; every
    GitHub call then fails fast with a configuration error.
    """
    token: Optional[str] = Field(
        default=None,
        repr=False,
        description="Bearer token for the GitHub API (usually from GITHUB_TOKEN)"
    )
    org: str = Field(
        default="kyutopia",
        description="Organization whose project board and repositories are shown"
    )
    repo: str = Field(
        default="kyutopia-ops",
        description="Operations repository (issues, pipeline folder)"
    )
    project_number: int = Field(
        default=1,
        ge=1,
        description="ProjectV2 number of the organization board"
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout"
    )
    webhook_secret: Optional[str] = Field(
        default=None,
        repr=False,
        description="Secret for verifying webhook signatures (empty disables checks)"
    )


class CacheConfig(BaseModel):
    """
    Stale-while-revalidate cache settings.

    Each view has its own fresh TTL; the stale window is
    ``ttl * stale_multiplier`` for every key.
    """
    default_ttl_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Fresh TTL used when a view does not set its own"
    )
    stale_multiplier: float = Field(
        default=5.0,
        gt=1,
        description="Stale window as a multiple of each key's TTL"
    )
    low_water_mark: int = Field(
        default=10,
        ge=0,
        description="Serve stale data instead of fetching below this many remaining calls"
    )
    dedupe: bool = Field(
        default=True,
        description="Share one in-flight request per key between concurrent callers"
    )
    board_ttl_seconds: float = Field(default=60.0, gt=0)
    issues_ttl_seconds: float = Field(default=60.0, gt=0)
    pulls_ttl_seconds: float = Field(default=120.0, gt=0)
    pipeline_ttl_seconds: float = Field(default=300.0, gt=0)


class DashboardConfig(BaseModel):
    """
    Dashboard server and local store settings.
    """
    db_path: Path = Field(
        default=Path(".opsboard") / "dashboard.db",
        description="SQLite database for tasks, agents, revenue, reports, pipeline and blog posts"
    )
    host: str = Field(default="127.0.0.1", description="Bind address for the API server")
    port: int = Field(default=8080, ge=1, le=65535, description="Port for the API server")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Origins allowed to call the API from a browser"
    )


class OpsboardConfig(BaseModel):
    """
    Top-level opsboard configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = OpsboardConfig(
        ...     github=GitHubConfig(org="acme", repo="ops"),
        ...     cache=CacheConfig(default_ttl_seconds=30),
        ... )
        >>> config.cache.stale_multiplier
        5.0
    """
    github: GitHubConfig = Field(
        default_factory=GitHubConfig,
        description="GitHub API settings"
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Cache and rate-limit settings"
    )
    dashboard: DashboardConfig = Field(
        default_factory=DashboardConfig,
        description="Server and store settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,  # Validate on field assignment
    )
