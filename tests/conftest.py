"""
Pytest configuration and shared fixtures.

Provides a controllable clock, isolated config environments, and factories
for GitHub clients and services backed by httpx.MockTransport.
"""

import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from opsboard.core.config import OpsboardConfig, clear_cache
from opsboard.core.config.models import CacheConfig, DashboardConfig, GitHubConfig
from opsboard.core.github.service import GitHubDashboardService

# ==============================================================================
# Clock
# ==============================================================================


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a fake clock starting at a fixed epoch."""
    return FakeClock()


# ==============================================================================
# Environment Fixtures
# ==============================================================================

OPSBOARD_ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_ORG",
    "GITHUB_REPO",
    "GITHUB_WEBHOOK_SECRET",
)


@pytest.fixture
def clean_env(monkeypatch):
    """
    Provide a clean environment without GITHUB_* or OPSBOARD_* env vars.
    """
    for key in list(os.environ.keys()):
        if key.startswith("OPSBOARD_") or key in OPSBOARD_ENV_VARS:
            monkeypatch.delenv(key, raising=False)

    monkeypatch.setenv("XDG_CONFIG_HOME", "/tmp/test-config")

    return monkeypatch


@pytest.fixture
def isolated_config(clean_env, tmp_path, monkeypatch):
    """
    Provide completely isolated config environment.

    Sets XDG_CONFIG_HOME and the working directory to temporary locations
    to prevent tests from loading system or user configs.
    """
    config_home = tmp_path / "config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.chdir(tmp_path)

    clear_cache()
    yield config_home
    clear_cache()


# ==============================================================================
# GitHub Fixtures
# ==============================================================================

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def app_config(tmp_path) -> OpsboardConfig:
    """Configuration with a token, fixed repo names and a temp database."""
    return OpsboardConfig(
        github=GitHubConfig(token="test-token", org="acme", repo="ops"),
        cache=CacheConfig(),
        dashboard=DashboardConfig(db_path=tmp_path / "dashboard.db"),
    )


@pytest.fixture
def make_service(app_config, clock):
    """
    Factory for a GitHubDashboardService whose requests go to a handler.

    Usage:
        def test_something(make_service):
            service = make_service(lambda request: httpx.Response(200, json={}))
    """

    def factory(handler: Handler, **overrides: Any) -> GitHubDashboardService:
        config = app_config.model_copy(deep=True)
        for section, values in overrides.items():
            setattr(config, section, getattr(config, section).model_copy(update=values))
        return GitHubDashboardService.from_config(
            config, clock=clock, transport=httpx.MockTransport(handler)
        )

    return factory
