"""Dashboard server for opsboard."""
