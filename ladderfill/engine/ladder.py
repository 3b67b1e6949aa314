"""Ladder construction helpers: turn planner config into discrete price levels."""

from __future__ import annotations

import logging
import math
from enum import IntEnum

from ladderfill.models import Level

log = logging.getLogger(__name__)

MAX_SELL_LEVELS = 60


class LadderDepth(IntEnum):
    """Maximum cumulative drawdown a buy ladder spans, in percent."""

    MODERATE = 70
    AGGRESSIVE = 75
    CONSERVATIVE = 90


# Drawdowns (percent below the top price) per depth profile, shallow -> deep.
DRAWDOWN_PROFILES: dict[LadderDepth, tuple[int, ...]] = {
    LadderDepth.MODERATE: (20, 30, 40, 50, 60, 70),
    LadderDepth.AGGRESSIVE: (25, 50, 75),
    LadderDepth.CONSERVATIVE: (20, 30, 40, 50, 60, 70, 80, 90),
}


def _finite(value: float) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def round_price(value: float) -> float:
    """Round *value* to 12 significant digits to drop float noise.

    Significant digits keep sub-cent prices positive and distinct.
    """

    return float(f"{value:.12g}")


def coerce_depth(depth: LadderDepth | int | str | None) -> LadderDepth | None:
    """Return *depth* as :class:`LadderDepth` or ``None`` when unsupported."""

    if isinstance(depth, LadderDepth):
        return depth
    try:
        return LadderDepth(int(float(depth)))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def weights_for(count: int, growth: float) -> list[float]:
    """Return geometric weights ``growth ** i`` for ``i`` in ``range(count)``.

    A ``growth`` below ``1.0`` (or not finite) is treated as ``1.0`` so the
    ladder never allocates less to deeper levels than to shallower ones.
    """

    if not _finite(growth) or growth < 1.0:
        growth = 1.0
    return [float(growth) ** i for i in range(count)]


def split_budget(budget: float, weights: list[float]) -> list[float]:
    """Split *budget* proportionally to *weights*.

    The last slot absorbs the floating point remainder so the returned
    capacities always sum to ``budget``.
    """

    if not weights:
        return []
    total_w = sum(weights) or 1.0
    allocs = [budget * w / total_w for w in weights[:-1]]
    allocs.append(max(0.0, budget - sum(allocs)))
    return allocs


def build_levels(
    top_price: float,
    budget: float,
    depth: LadderDepth | int = LadderDepth.MODERATE,
    growth: float = 1.25,
) -> list[Level]:
    """Build a buy ladder below ``top_price``.

    Parameters
    ----------
    top_price:
        Top-of-cycle price the drawdowns are measured from.
    budget:
        Total USD to spread over the ladder.
    depth:
        One of :class:`LadderDepth`; selects the drawdown profile.
    growth:
        Ratio between successive level weights. ``1.25`` gives each deeper
        level 25% more budget than the one above it.

    Returns
    -------
    list[Level]
        Levels ordered shallow to deep with strictly decreasing prices and
        capacities summing to ``budget``. Malformed input (non-positive top
        price, negative budget, unknown depth) yields an empty list.
    """

    if not (_finite(top_price) and _finite(budget)):
        return []
    if not top_price > 0 or budget < 0:
        return []

    profile = coerce_depth(depth)
    if profile is None:
        log.warning("build_levels: unsupported ladder depth %r", depth)
        return []

    drawdowns = DRAWDOWN_PROFILES[profile]
    capacities = split_budget(float(budget), weights_for(len(drawdowns), growth))

    levels: list[Level] = []
    for i, (dd, cap) in enumerate(zip(drawdowns, capacities), start=1):
        price = round_price(float(top_price) * (1 - dd / 100))
        levels.append(
            Level(index=i, target_price=price, capacity=cap, drawdown_pct=float(dd))
        )
    return levels


def build_sell_levels(
    baseline_price: float,
    pool_tokens: float,
    step_pct: float = 50,
    levels_count: int = 5,
    sell_pct_of_remaining: float = 25.0,
) -> list[Level]:
    """Build a sell ladder above ``baseline_price``.

    Level ``k`` targets ``baseline * (1 + step_pct/100 * k)`` and plans to sell
    ``sell_pct_of_remaining`` percent of the tokens not yet planned; the last
    level takes whatever is left so capacities sum to ``pool_tokens``.
    """

    if not (_finite(baseline_price) and _finite(pool_tokens) and _finite(step_pct)):
        return []
    if not baseline_price > 0 or pool_tokens < 0 or not step_pct > 0:
        return []
    try:
        count = int(levels_count)
    except (TypeError, ValueError):
        return []
    if count < 1 or count > MAX_SELL_LEVELS:
        log.warning(
            "build_sell_levels: levels_count %r outside 1..%d",
            levels_count,
            MAX_SELL_LEVELS,
        )
        return []

    pct = float(sell_pct_of_remaining) if _finite(sell_pct_of_remaining) else 0.0
    frac = min(max(pct, 0.0), 100.0) / 100.0
    step = float(step_pct) / 100.0

    remaining = float(pool_tokens)
    levels: list[Level] = []
    for k in range(1, count + 1):
        tokens = remaining if k == count else max(0.0, remaining * frac)
        remaining = max(0.0, remaining - tokens)
        levels.append(
            Level(
                index=k,
                target_price=round_price(float(baseline_price) * (1 + step * k)),
                capacity=tokens,
                rise_pct=float(step_pct) * k,
            )
        )
    return levels
