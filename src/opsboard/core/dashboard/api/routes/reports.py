"""
Daily report routes.

- GET /api/reports - Reports filtered by ``date`` and ``agent_id``
- POST /api/reports - Submit a daily report
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from opsboard.core.dashboard.api.deps import get_store
from opsboard.core.store import Store

router = APIRouter()

DEFAULT_LIMIT = 30


class ReportCreate(BaseModel):
    """Request body for POST /api/reports."""

    date: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    agent_id: str | None = None
    agent_name: str | None = None
    summary: str | None = None


@router.get("/reports")
async def list_reports(
    date: str | None = Query(None, description="Only reports for this date"),
    agent_id: str | None = Query(None, description="Only reports by this agent"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=500),
    store: Store = Depends(get_store),
) -> list[dict[str, Any]]:
    """
    List daily reports, newest first.
    """
    sql = "SELECT * FROM daily_reports WHERE 1=1"
    params: list[Any] = []

    if date:
        sql += " AND date = ?"
        params.append(date)
    if agent_id:
        sql += " AND agent_id = ?"
        params.append(agent_id)

    sql += " ORDER BY date DESC, submitted_at DESC LIMIT ?"
    params.append(limit)

    return store.query(sql, params)


@router.post("/reports", status_code=201)
async def create_report(report: ReportCreate, store: Store = Depends(get_store)) -> dict[str, str]:
    report_id = str(uuid.uuid4())
    store.run(
        """
        INSERT INTO daily_reports (id, date, agent_id, agent_name, content, summary)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            report_id,
            report.date,
            report.agent_id,
            report.agent_name,
            report.content,
            report.summary,
        ),
    )
    return {"id": report_id}
