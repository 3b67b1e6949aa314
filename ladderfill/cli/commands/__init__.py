"""Grouped Typer command modules for the ladderfill CLI."""

from __future__ import annotations

from . import alerts, fills, ladder, notify, planner, trades

__all__ = ["alerts", "fills", "ladder", "notify", "planner", "trades"]
