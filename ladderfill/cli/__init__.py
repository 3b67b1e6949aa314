"""ladderfill CLI package that exposes the Typer application and command modules."""

from __future__ import annotations

from .core import CLIApp, app, log

# Import command modules for side-effect registration
from . import commands
from .commands.alerts import alerts_check, alerts_watch
from .commands.fills import fills_buy, fills_sell, pnl
from .commands.ladder import ladder_build, ladder_sell
from .commands.notify import notify_test
from .commands.planner import planner_buy, planner_sell
from .commands.trades import trades_add, trades_delete, trades_import
from .__main__ import main

__all__ = [
    "CLIApp",
    "alerts_check",
    "alerts_watch",
    "app",
    "commands",
    "fills_buy",
    "fills_sell",
    "ladder_build",
    "ladder_sell",
    "log",
    "main",
    "notify_test",
    "planner_buy",
    "planner_sell",
    "pnl",
    "trades_add",
    "trades_delete",
    "trades_import",
]
