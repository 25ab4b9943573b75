"""
Revenue tracker routes.

- GET /api/revenue - All revenue entries, newest date first
- POST /api/revenue - Record a revenue entry
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from opsboard.core.dashboard.api.deps import get_store
from opsboard.core.store import Store

router = APIRouter()


class RevenueCreate(BaseModel):
    """Request body for POST /api/revenue."""

    source: str = Field(..., min_length=1)
    amount: float
    currency: str = "KRW"
    description: str | None = None
    date: str = Field(..., min_length=1, description="Date the revenue was earned (YYYY-MM-DD)")


@router.get("/revenue")
async def list_revenue(store: Store = Depends(get_store)) -> list[dict[str, Any]]:
    return store.query("SELECT * FROM revenues ORDER BY date DESC")


@router.post("/revenue", status_code=201)
async def create_revenue(
    revenue: RevenueCreate, store: Store = Depends(get_store)
) -> dict[str, Any]:
    """
    Record a revenue entry.

    Returns:
        The stored entry including its generated ID
    """
    revenue_id = str(uuid.uuid4())
    store.run(
        """
        INSERT INTO revenues (id, source, amount, currency, description, date)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            revenue_id,
            revenue.source,
            revenue.amount,
            revenue.currency,
            revenue.description,
            revenue.date,
        ),
    )
    return {"id": revenue_id, **revenue.model_dump()}
