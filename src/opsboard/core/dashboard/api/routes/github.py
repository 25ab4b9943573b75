"""
GitHub API routes for the dashboard.

Every view is served through the stale-while-revalidate cache:
- GET /api/github?type=board|issues|pulls|pipeline - One cached view
- GET /api/github/status - Cache size, rate-limit budget and last error

GitHub failures that the cache cannot absorb propagate as ``GitHubError``
and are mapped to an error response by the app's exception handler.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from opsboard.core.dashboard.api.deps import get_github
from opsboard.core.github.models import CacheStats
from opsboard.core.github.service import ISSUE_STATES, GitHubDashboardService

router = APIRouter()

VIEW_TYPES = ("board", "issues", "pulls", "pipeline")


@router.get("/github")
async def get_github_view(
    type: str = Query("board", description="View: board, issues, pulls or pipeline"),
    state: str = Query("open", description="Issue state filter for type=issues"),
    service: GitHubDashboardService = Depends(get_github),
) -> Any:
    """
    Get one GitHub-backed dashboard view.

    Returns cached data while it is fresh, stale data when GitHub is failing
    or the rate-limit budget is low, and an error only when nothing usable
    is cached.

    Raises:
        HTTPException: 400 if the view type or issue state is unknown
    """
    if type == "board":
        return await service.board()
    if type == "issues":
        if state not in ISSUE_STATES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid state '{state}', expected one of: {', '.join(ISSUE_STATES)}",
            )
        return await service.issues(state)
    if type == "pulls":
        return await service.pulls()
    if type == "pipeline":
        return await service.pipeline()

    raise HTTPException(
        status_code=400,
        detail=f"Invalid type '{type}', expected one of: {', '.join(VIEW_TYPES)}",
    )


@router.get("/github/status", response_model=CacheStats)
async def get_github_status(
    service: GitHubDashboardService = Depends(get_github),
) -> CacheStats:
    """
    Get cache and rate-limit status.

    Example response:
        {
          "entries": 4,
          "rateLimitRemaining": 4821,
          "rateLimitReset": "2026-01-05T10:00:00.000Z",
          "lastError": null
        }
    """
    return service.status()
