"""Core opsboard functionality: GitHub access, caching, config and storage."""
