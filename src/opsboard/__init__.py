"""
opsboard - operations dashboard backend.

Serves GitHub project activity through a rate-limit-aware,
stale-while-revalidate cache alongside a local SQLite store.
"""

__version__ = "0.1.0"
