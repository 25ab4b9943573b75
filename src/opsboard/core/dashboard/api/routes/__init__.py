"""API route modules for the opsboard dashboard."""
