"""
Blog tracker routes.

- GET /api/blog - All posts, newest first
- POST /api/blog - Record a post
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from opsboard.core.dashboard.api.deps import get_store
from opsboard.core.store import Store

router = APIRouter()


class BlogPostCreate(BaseModel):
    """Request body for POST /api/blog."""

    title: str = Field(..., min_length=1)
    keyword: str | None = None
    category: str | None = None
    platform: str = "blog"
    url: str | None = None
    status: str = "draft"
    views: int = Field(default=0, ge=0)
    clicks: int = Field(default=0, ge=0)
    revenue: float = 0.0
    published_at: str | None = None


@router.get("/blog")
async def list_blog_posts(store: Store = Depends(get_store)) -> list[dict[str, Any]]:
    return store.query("SELECT * FROM blog_posts ORDER BY created_at DESC, rowid DESC")


@router.post("/blog", status_code=201)
async def create_blog_post(
    post: BlogPostCreate, store: Store = Depends(get_store)
) -> dict[str, Any]:
    post_id = str(uuid.uuid4())
    store.run(
        """
        INSERT INTO blog_posts (id, title, keyword, category, platform, url, status,
                                views, clicks, revenue, published_at)
        VALUES (:id, :title, :keyword, :category, :platform, :url, :status,
                :views, :clicks, :revenue, :published_at)
        """,
        {"id": post_id, **post.model_dump()},
    )
    return {"id": post_id, **post.model_dump()}
