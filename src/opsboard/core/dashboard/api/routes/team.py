"""
Team routes.

- GET /api/team - Agents with task counts and their latest activity
"""

from typing import Any

from fastapi import APIRouter, Depends

from opsboard.core.dashboard.api.deps import get_store
from opsboard.core.store import Store

router = APIRouter()

TEAM_SQL = """
SELECT a.*,
    (SELECT COUNT(*) FROM tasks t
     WHERE t.assigned_agent_id = a.id AND t.status = 'in_progress') AS active_tasks,
    (SELECT COUNT(*) FROM tasks t
     WHERE t.assigned_agent_id = a.id AND t.status = 'done') AS completed_tasks,
    (SELECT message FROM activity e
     WHERE e.agent_id = a.id ORDER BY e.created_at DESC, e.id DESC LIMIT 1) AS last_activity,
    (SELECT created_at FROM activity e
     WHERE e.agent_id = a.id ORDER BY e.created_at DESC, e.id DESC LIMIT 1) AS last_activity_at
FROM agents a
ORDER BY a.is_master DESC, a.name
"""


@router.get("/team")
async def list_team(store: Store = Depends(get_store)) -> list[dict[str, Any]]:
    """
    List every agent, master agents first, then by name.

    Each row adds ``active_tasks`` (in progress), ``completed_tasks`` (done),
    and ``last_activity``/``last_activity_at`` (None when the agent has no
    recorded activity).
    """
    return store.query(TEAM_SQL)
