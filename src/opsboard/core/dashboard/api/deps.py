"""
Request-scoped access to the collaborators held on ``app.state``.
"""

from fastapi import Request

from opsboard.core.config import OpsboardConfig
from opsboard.core.events import EventBuffer
from opsboard.core.github.service import GitHubDashboardService
from opsboard.core.store import Store


def get_config(request: Request) -> OpsboardConfig:
    return request.app.state.config  # type: ignore[no-any-return]


def get_github(request: Request) -> GitHubDashboardService:
    return request.app.state.github  # type: ignore[no-any-return]


def get_store(request: Request) -> Store:
    return request.app.state.store  # type: ignore[no-any-return]


def get_events(request: Request) -> EventBuffer:
    return request.app.state.events  # type: ignore[no-any-return]
