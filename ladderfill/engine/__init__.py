"""Pure ladder building and fill matching functions."""

from __future__ import annotations

from .fills import chronological, compute_buy_fills, compute_sell_fills
from .ladder import LadderDepth, build_levels, build_sell_levels
from .pnl import PnlResult, compute_pnl, weighted_avg_price
from .touch import is_level_touched, is_near_level, unfilled_levels_near

__all__ = [
    "LadderDepth",
    "PnlResult",
    "build_levels",
    "build_sell_levels",
    "chronological",
    "compute_buy_fills",
    "compute_sell_fills",
    "compute_pnl",
    "is_level_touched",
    "is_near_level",
    "unfilled_levels_near",
    "weighted_avg_price",
]
