"""
Local relational store for tasks, agents, activity, revenue, reports,
pipeline items and blog posts.
"""

from opsboard.core.store.connection import configure_connection, get_connection, init_db
from opsboard.core.store.schema import SCHEMA_VERSION, create_schema
from opsboard.core.store.store import Store, StoreError

__all__ = [
    "SCHEMA_VERSION",
    "Store",
    "StoreError",
    "configure_connection",
    "create_schema",
    "get_connection",
    "init_db",
]
