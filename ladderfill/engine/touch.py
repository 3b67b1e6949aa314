"""Live-price proximity helpers used for row highlighting and alerts."""

from __future__ import annotations

import math
from typing import Literal, Sequence

from ladderfill.models import FillResult, Level

# Keep a level lit inside a tiny band so highlighting does not flicker.
TOUCH_BAND_PCT = 0.001
TOUCH_BAND_ABS = 0.05


def is_level_touched(
    side: Literal["buy", "sell"],
    level_price: float,
    last_price: float | None,
    current_price: float | None,
) -> bool:
    """Return ``True`` when ``current_price`` sits on or just crossed a level.

    A level counts as touched when the current price is within 0.10% (relative
    to ``max(1, level_price)``) or $0.05 of it, or when the move from
    ``last_price`` to ``current_price`` crossed it: downward for buy levels,
    upward for sell levels.
    """

    if current_price is None or not math.isfinite(level_price):
        return False

    gap = abs(current_price - level_price)
    near = gap / max(1.0, level_price) <= TOUCH_BAND_PCT or gap <= TOUCH_BAND_ABS

    crossed = False
    if last_price is not None:
        if side == "buy":
            crossed = last_price > level_price >= current_price
        else:
            crossed = last_price < level_price <= current_price
    return near or crossed


def is_near_level(live_price: float, target_price: float, proximity: float) -> bool:
    """``abs(live - target) / target <= proximity`` for positive prices."""

    if not (live_price > 0 and target_price > 0):
        return False
    return abs(live_price - target_price) / target_price <= max(0.0, proximity)


def unfilled_levels_near(
    levels: Sequence[Level],
    fills: FillResult,
    live_price: float,
    proximity: float,
) -> list[int]:
    """Return positions of unfilled levels whose target is near ``live_price``."""

    out: list[int] = []
    for pos, level in enumerate(levels):
        pct = fills.fill_pct[pos] if pos < len(fills.fill_pct) else 0.0
        if pct >= 1.0:
            continue
        if is_near_level(live_price, level.target_price, proximity):
            out.append(pos)
    return out
