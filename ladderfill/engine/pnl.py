"""Position, average cost and realised PnL helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from ladderfill.engine.fills import chronological
from ladderfill.models import Trade


@dataclass(frozen=True)
class PnlResult:
    """Running position summary over a trade history."""

    position_qty: float
    avg_cost: float
    realized_pnl: float
    total_fees: float
    cost_basis: float


def compute_pnl(trades: Iterable[Trade]) -> PnlResult:
    """Replay *trades* oldest first with a running average cost.

    Buys fold ``price * quantity + fee`` into the average cost. Sells realise
    ``(price - avg_cost) * quantity - fee``; once the position is flat or short
    the average cost resets to zero.
    """

    position = 0.0
    avg_cost = 0.0
    realized = 0.0
    fees = 0.0

    for t in chronological(trades):
        fee = float(t.fee or 0.0)
        qty = float(t.quantity)
        price = float(t.price)
        fees += fee
        if t.side == "buy":
            new_qty = position + qty
            if new_qty > 0:
                avg_cost = (avg_cost * position + price * qty + fee) / new_qty
            else:
                avg_cost = 0.0
            position = new_qty
        else:
            realized += (price - avg_cost) * qty - fee
            position -= qty
            if position <= 0:
                avg_cost = 0.0

    return PnlResult(
        position_qty=position,
        avg_cost=avg_cost,
        realized_pnl=realized,
        total_fees=fees,
        cost_basis=avg_cost * position if position > 0 else 0.0,
    )


def weighted_avg_price(rows: Iterable[Mapping[str, float | None]]) -> float | None:
    """Return ``sum(price * qty) / sum(qty)`` over usable rows.

    Rows are mappings with ``price`` and ``quantity`` keys. Rows with a missing
    or non-finite price, or a non-positive quantity, are ignored. ``None`` is
    returned when nothing qualifies.
    """

    cost = 0.0
    qty = 0.0
    for row in rows:
        p = row.get("price")
        q = row.get("quantity")
        if not isinstance(p, (int, float)) or not isinstance(q, (int, float)):
            continue
        if math.isfinite(p) and math.isfinite(q) and q > 0:
            cost += p * q
            qty += q
    if qty <= 0:
        return None
    return cost / qty
