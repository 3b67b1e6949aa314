"""Fill matchers that reconcile executed trades against buy and sell ladders.

Both matchers are pure: they read the levels and trades they are given and
return a fresh :class:`~ladderfill.models.FillResult`. Matching is a two-pass
waterfall per trade:

1. walk the price-sorted level indices and collect the levels the trade price
   qualifies for, which locates the deepest (buy) or highest (sell) level the
   trade reached;
2. distribute the trade volume over those eligible levels starting from the
   shallowest/nearest one, so reaching a deep level backfills the levels above
   it before its own.

Whatever no eligible level can absorb is off-plan.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Iterable, Literal, Sequence

from ladderfill.models import FILL_EPSILON, FillResult, Level, Trade

log = logging.getLogger(__name__)


def _num(value: object) -> float:
    """Return *value* as a finite float, mapping ``None``/garbage to ``0.0``."""

    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _tolerance(value: float) -> float:
    return max(0.0, _num(value))


def _sort_key(trade: Trade) -> tuple[int, float]:
    ts = trade.trade_time
    if not isinstance(ts, datetime):
        return (0, 0.0)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (1, ts.timestamp())


def chronological(trades: Iterable[Trade]) -> list[Trade]:
    """Return *trades* oldest first.

    The sort is stable, so same-timestamp trades keep the caller's order.
    Trades without a timestamp come first.
    """

    return sorted(trades, key=_sort_key)


def _valid(trade: Trade) -> bool:
    return _num(trade.price) > 0 and _num(trade.quantity) > 0


def _waterfall(
    order: Sequence[int],
    eligible: Callable[[int], bool],
    capacity: list[float],
    filled: list[float],
    amount: float,
) -> list[tuple[int, float]]:
    """Pour *amount* into the eligible levels of *order*.

    Pass 1 collects the eligible positions along ``order``, which ends at the
    deepest/highest level reached. Pass 2 fills them from the first eligible
    position onward. ``filled`` is updated in place; the list of
    ``(level_index, amount_taken)`` pairs is returned.
    """

    reached = [i for i in order if eligible(i)]
    if not reached:
        return []

    takes: list[tuple[int, float]] = []
    remaining = amount
    for i in reached:
        if remaining <= 0:
            break
        room = capacity[i] - filled[i]
        if room <= FILL_EPSILON:
            continue
        take = min(room, remaining)
        filled[i] += take
        remaining -= take
        takes.append((i, take))
    return takes


def _fill_pct(filled: list[float], capacity: list[float]) -> tuple[float, ...]:
    return tuple(
        min(1.0, max(0.0, f / c)) if c > 0 else 0.0 for f, c in zip(filled, capacity)
    )


def _empty(side: Literal["buy", "sell"], capacity: list[float]) -> FillResult:
    zeros = tuple(0.0 for _ in capacity)
    return FillResult(
        side=side,
        capacity=tuple(capacity),
        allocated=zeros,
        allocated_usd=zeros,
        fill_pct=zeros,
        planned_total=sum(capacity),
    )


def compute_buy_fills(
    levels: Sequence[Level],
    trades: Iterable[Trade],
    tolerance: float = 0.0,
) -> FillResult:
    """Match buy trades against a USD-denominated buy ladder.

    Parameters
    ----------
    levels:
        Planned buy levels. ``capacity`` is planned USD.
    trades:
        Buy executions; processed oldest first.
    tolerance:
        Fraction above a level's price that still counts as reaching it. A
        trade at price ``P`` is eligible for level ``i`` when
        ``P <= target_price_i * (1 + tolerance)``. ``0.0`` is strict mode.

    Returns
    -------
    FillResult
        USD allocated per level, fill ratios, off-plan USD and the average
        cost of the absorbed volume. Fees are not part of the notional.
    """

    capacity = [max(0.0, _num(lv.capacity)) for lv in levels]
    if not levels:
        return _empty("buy", capacity)

    tol = _tolerance(tolerance)
    prices = [_num(lv.target_price) for lv in levels]
    # shallow -> deep
    order = sorted(range(len(levels)), key=lambda i: -prices[i])
    filled = [0.0] * len(levels)

    on_plan_usd = 0.0
    on_plan_qty = 0.0
    off_plan_usd = 0.0

    for trade in chronological(trades):
        if not _valid(trade):
            log.debug("compute_buy_fills: skipping invalid trade %r", trade)
            continue
        price = _num(trade.price)
        notional = price * _num(trade.quantity)

        def eligible(i: int, _p: float = price) -> bool:
            return prices[i] > 0 and _p <= prices[i] * (1 + tol)

        takes = _waterfall(order, eligible, capacity, filled, notional)
        absorbed = sum(t for _, t in takes)
        leftover = max(0.0, notional - absorbed)
        on_plan_usd += absorbed
        on_plan_qty += absorbed / price
        off_plan_usd += leftover
        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                "buy trade price=%s usd=%.8f takes=%s off_plan=%.8f",
                price,
                notional,
                [(levels[i].index, round(t, 8)) for i, t in takes],
                leftover,
            )

    allocated = tuple(filled)
    return FillResult(
        side="buy",
        capacity=tuple(capacity),
        allocated=allocated,
        allocated_usd=allocated,
        fill_pct=_fill_pct(filled, capacity),
        planned_total=sum(capacity),
        allocated_total=sum(filled),
        off_plan=off_plan_usd,
        off_plan_usd=off_plan_usd,
        on_plan_quantity=on_plan_qty,
        on_plan_avg_cost=on_plan_usd / on_plan_qty if on_plan_qty > 0 else 0.0,
    )


def compute_sell_fills(
    levels: Sequence[Level],
    trades: Iterable[Trade],
    tolerance: float = 0.0,
) -> FillResult:
    """Match sell trades against a token-denominated sell ladder.

    A sell at price ``P`` is eligible for level ``i`` when
    ``P >= target_price_i * (1 - tolerance)``. Tokens are poured into the
    nearest (lowest priced) eligible levels first; whatever is left is
    off-plan. ``on_plan_avg_cost`` is the average sell price of the absorbed
    tokens.
    """

    capacity = [max(0.0, _num(lv.capacity)) for lv in levels]
    if not levels:
        return _empty("sell", capacity)

    tol = _tolerance(tolerance)
    prices = [_num(lv.target_price) for lv in levels]
    # near -> far
    order = sorted(range(len(levels)), key=lambda i: prices[i])
    filled = [0.0] * len(levels)
    filled_usd = [0.0] * len(levels)

    on_plan_usd = 0.0
    on_plan_tokens = 0.0
    off_plan_tokens = 0.0
    off_plan_usd = 0.0

    for trade in chronological(trades):
        if not _valid(trade):
            log.debug("compute_sell_fills: skipping invalid trade %r", trade)
            continue
        price = _num(trade.price)
        quantity = _num(trade.quantity)

        def eligible(i: int, _p: float = price) -> bool:
            return prices[i] > 0 and _p >= prices[i] * (1 - tol)

        takes = _waterfall(order, eligible, capacity, filled, quantity)
        absorbed = 0.0
        for i, take in takes:
            filled_usd[i] += take * price
            absorbed += take
        leftover = max(0.0, quantity - absorbed)
        on_plan_tokens += absorbed
        on_plan_usd += absorbed * price
        off_plan_tokens += leftover
        off_plan_usd += leftover * price
        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                "sell trade price=%s tokens=%.8f takes=%s off_plan=%.8f",
                price,
                quantity,
                [(levels[i].index, round(t, 8)) for i, t in takes],
                leftover,
            )

    return FillResult(
        side="sell",
        capacity=tuple(capacity),
        allocated=tuple(filled),
        allocated_usd=tuple(filled_usd),
        fill_pct=_fill_pct(filled, capacity),
        planned_total=sum(capacity),
        allocated_total=sum(filled),
        off_plan=off_plan_tokens,
        off_plan_usd=off_plan_usd,
        on_plan_quantity=on_plan_tokens,
        on_plan_avg_cost=on_plan_usd / on_plan_tokens if on_plan_tokens > 0 else 0.0,
    )
