"""Ladder planning and trade fill reconciliation."""

from __future__ import annotations

from .engine import (
    LadderDepth,
    build_levels,
    build_sell_levels,
    compute_buy_fills,
    compute_sell_fills,
)
from .models import BuyPlanner, FillResult, Level, SellPlanner, Trade

__all__ = [
    "BuyPlanner",
    "FillResult",
    "LadderDepth",
    "Level",
    "SellPlanner",
    "Trade",
    "build_levels",
    "build_sell_levels",
    "compute_buy_fills",
    "compute_sell_fills",
]
