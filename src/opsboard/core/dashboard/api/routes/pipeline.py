"""
Business pipeline routes.

Pipeline items are opportunities tracked from discovery to done. These are
stored locally and are unrelated to the GitHub ``pipeline/`` folder view.

- GET /api/pipeline - All items by stage, then priority, newest first
- POST /api/pipeline - Create an item
- PATCH /api/pipeline/{item_id} - Update some fields of an item
- DELETE /api/pipeline/{item_id} - Delete an item
"""

import logging
import uuid
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from opsboard.core.dashboard.api.deps import get_store
from opsboard.core.store import Store

logger = logging.getLogger(__name__)

router = APIRouter()

Stage = Literal["discovery", "analysis", "execution", "done"]
Priority = Literal["low", "normal", "high", "urgent"]

# Columns that may not be cleared with an explicit null
REQUIRED_FIELDS = ("name", "stage", "priority")

LIST_SQL = """
SELECT * FROM pipeline
ORDER BY
    CASE stage
        WHEN 'discovery' THEN 0 WHEN 'analysis' THEN 1
        WHEN 'execution' THEN 2 ELSE 3
    END,
    CASE priority
        WHEN 'urgent' THEN 0 WHEN 'high' THEN 1
        WHEN 'normal' THEN 2 ELSE 3
    END,
    created_at DESC,
    rowid DESC
"""


class PipelineCreate(BaseModel):
    """Request body for POST /api/pipeline."""

    name: str = Field(..., min_length=1)
    stage: Stage = "discovery"
    owner: str | None = None
    expected_revenue: float = 0.0
    notes: str | None = None
    priority: Priority = "normal"


class PipelineUpdate(BaseModel):
    """Request body for PATCH /api/pipeline/{item_id}; only sent fields change."""

    name: str | None = Field(default=None, min_length=1)
    stage: Stage | None = None
    owner: str | None = None
    expected_revenue: float | None = None
    actual_revenue: float | None = None
    notes: str | None = None
    priority: Priority | None = None


def _get_item(store: Store, item_id: str) -> dict[str, Any]:
    rows = store.query("SELECT * FROM pipeline WHERE id = ?", (item_id,))
    if not rows:
        raise HTTPException(status_code=404, detail=f"Pipeline item not found: {item_id}")
    return rows[0]


@router.get("/pipeline")
async def list_pipeline(store: Store = Depends(get_store)) -> list[dict[str, Any]]:
    return store.query(LIST_SQL)


@router.post("/pipeline", status_code=201)
async def create_pipeline_item(
    item: PipelineCreate, store: Store = Depends(get_store)
) -> dict[str, Any]:
    """
    Create a pipeline item.

    Returns:
        The stored row, including defaults filled in by the database
    """
    item_id = str(uuid.uuid4())
    store.run(
        """
        INSERT INTO pipeline (id, name, stage, owner, expected_revenue, notes, priority)
        VALUES (:id, :name, :stage, :owner, :expected_revenue, :notes, :priority)
        """,
        {"id": item_id, **item.model_dump()},
    )
    return _get_item(store, item_id)


@router.patch("/pipeline/{item_id}")
async def update_pipeline_item(
    item_id: str, update: PipelineUpdate, store: Store = Depends(get_store)
) -> dict[str, Any]:
    """
    Update the fields present in the request body.

    Raises:
        HTTPException: 400 if no known field is given or a required field is
            null, 404 if the item does not exist
    """
    changes = update.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields")

    cleared = [name for name in REQUIRED_FIELDS if name in changes and changes[name] is None]
    if cleared:
        raise HTTPException(status_code=400, detail=f"Field cannot be null: {cleared[0]}")

    _get_item(store, item_id)

    # Column names come from PipelineUpdate's fields, never from the request
    assignments = ", ".join(f"{column} = :{column}" for column in changes)
    store.run(
        f"UPDATE pipeline SET {assignments}, updated_at = datetime('now') WHERE id = :id",
        {**changes, "id": item_id},
    )
    logger.debug("Updated pipeline item %s: %s", item_id, sorted(changes))
    return _get_item(store, item_id)


@router.delete("/pipeline/{item_id}")
async def delete_pipeline_item(
    item_id: str, store: Store = Depends(get_store)
) -> dict[str, bool]:
    """Delete an item. Deleting an unknown ID also succeeds."""
    store.run("DELETE FROM pipeline WHERE id = ?", (item_id,))
    return {"success": True}
