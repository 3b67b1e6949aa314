"""SQLite persistence for planners, levels, trades and alert state."""
