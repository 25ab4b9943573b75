"""
SQLite schema for the opsboard local store.

Tables:
- tasks: Mission queue items shown on the local kanban
- agents: Team members and automated agents that own tasks
- activity: Timeline of what agents did, newest used as "last activity"
- revenues: Revenue entries for the revenue tracker
- daily_reports: Daily reports submitted by agents
- pipeline: Business pipeline items moving through discovery to done
- blog_posts: Published posts and their traffic and revenue
- schema_info: Version tracking for migrations
"""

import sqlite3

# Schema version for migrations
SCHEMA_VERSION = 2

TASK_STATUSES = ["inbox", "assigned", "in_progress", "review", "done"]
PIPELINE_STAGES = ["discovery", "analysis", "execution", "done"]
PRIORITIES = ["low", "normal", "high", "urgent"]

SCHEMA_DDL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    role TEXT,
    status TEXT DEFAULT 'standby',
    is_master INTEGER NOT NULL DEFAULT 0,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'inbox'
        CHECK(status IN ('inbox', 'assigned', 'in_progress', 'review', 'done')),
    priority TEXT DEFAULT 'normal',
    assigned_agent_id TEXT REFERENCES agents(id) ON DELETE SET NULL,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS activity (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id TEXT REFERENCES agents(id) ON DELETE CASCADE,
    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
    message TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS revenues (
    id TEXT PRIMARY KEY,
    source TEXT NOT NULL,
    amount REAL NOT NULL,
    currency TEXT NOT NULL DEFAULT 'KRW',
    description TEXT,
    date TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS daily_reports (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    agent_id TEXT,
    agent_name TEXT,
    content TEXT NOT NULL,
    summary TEXT,
    submitted_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS pipeline (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    stage TEXT NOT NULL DEFAULT 'discovery'
        CHECK(stage IN ('discovery', 'analysis', 'execution', 'done')),
    owner TEXT,
    expected_revenue REAL DEFAULT 0,
    actual_revenue REAL DEFAULT 0,
    notes TEXT,
    priority TEXT NOT NULL DEFAULT 'normal'
        CHECK(priority IN ('low', 'normal', 'high', 'urgent')),
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS blog_posts (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    keyword TEXT,
    category TEXT,
    platform TEXT NOT NULL DEFAULT 'blog',
    url TEXT,
    status TEXT NOT NULL DEFAULT 'draft',
    views INTEGER NOT NULL DEFAULT 0,
    clicks INTEGER NOT NULL DEFAULT 0,
    revenue REAL NOT NULL DEFAULT 0,
    published_at TEXT,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
CREATE INDEX IF NOT EXISTS idx_tasks_agent ON tasks(assigned_agent_id);
CREATE INDEX IF NOT EXISTS idx_activity_agent ON activity(agent_id, created_at);
CREATE INDEX IF NOT EXISTS idx_revenues_date ON revenues(date);
CREATE INDEX IF NOT EXISTS idx_reports_date ON daily_reports(date, submitted_at);
CREATE INDEX IF NOT EXISTS idx_reports_agent ON daily_reports(agent_id);
CREATE INDEX IF NOT EXISTS idx_pipeline_stage ON pipeline(stage);
CREATE INDEX IF NOT EXISTS idx_blog_posts_created ON blog_posts(created_at);
"""


def _add_missing_columns(conn: sqlite3.Connection) -> None:
    # Version 1 databases predate agents.is_master
    columns = set()
    for row in conn.execute("PRAGMA table_info(agents)"):
        columns.add(row["name"] if isinstance(row, dict) else row[1])
    if "is_master" not in columns:
        conn.execute("ALTER TABLE agents ADD COLUMN is_master INTEGER NOT NULL DEFAULT 0")


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create the database schema, upgrading an older one in place.

    Idempotent - safe to call multiple times.

    Args:
        conn: SQLite database connection
    """
    conn.executescript(SCHEMA_DDL)
    _add_missing_columns(conn)

    conn.execute(
        """
        INSERT OR REPLACE INTO schema_info (version, description)
        VALUES (?, ?)
        """,
        (SCHEMA_VERSION, "Tasks, agents, activity, revenues, reports, pipeline and blog posts"),
    )

    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """
    Get the current schema version from the database.

    Returns:
        Current schema version, or None if schema_info table doesn't exist
    """
    try:
        row = conn.execute("SELECT MAX(version) AS version FROM schema_info").fetchone()
    except sqlite3.OperationalError:
        # schema_info table doesn't exist
        return None
    if row is None:
        return None
    version = row["version"] if isinstance(row, dict) else row[0]
    return int(version) if version is not None else None


def needs_migration(conn: sqlite3.Connection) -> bool:
    """
    Check if database needs migration to current schema version.

    Example:
        >>> conn = sqlite3.connect(":memory:")
        >>> needs_migration(conn)
        True
        >>> create_schema(conn)
        >>> needs_migration(conn)
        False
    """
    current_version = get_schema_version(conn)
    if current_version is None:
        return True
    return current_version < SCHEMA_VERSION
