"""
FastAPI application for the opsboard dashboard.

API Endpoints:
- GET /api/github - Cached GitHub views (board, issues, pulls, pipeline)
- GET /api/github/status - Cache and rate-limit status
- POST /api/webhooks/github - GitHub webhook intake
- GET/POST /api/revenue - Revenue tracker
- GET/POST /api/reports - Daily reports
- GET/POST /api/pipeline, PATCH/DELETE /api/pipeline/{id} - Business pipeline
- GET /api/team - Agents with task counts
- GET/POST /api/blog - Blog tracker

Usage:
    uvicorn opsboard.core.dashboard.api.app:create_app --factory --reload
"""

from opsboard.core.dashboard.api.app import create_app

__all__ = ["create_app"]
