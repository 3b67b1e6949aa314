"""Shared data models for ladder planning and fill reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

# Absolute slack used when comparing filled amounts against capacity.
FILL_EPSILON = 1e-9


@dataclass(frozen=True)
class Level:
    """A planned ladder rung.

    ``capacity`` is planned USD notional on buy ladders and planned token
    quantity on sell ladders.
    """

    index: int
    target_price: float
    capacity: float
    # Optional display metadata
    drawdown_pct: float | None = None  # buy: percent below the top price
    rise_pct: float | None = None  # sell: percent above the baseline

    @property
    def est_tokens(self) -> float:
        """Return ``capacity / target_price`` or ``0.0`` for a bad price."""
        if self.target_price > 0:
            return self.capacity / self.target_price
        return 0.0


@dataclass(frozen=True)
class Trade:
    """An executed trade as supplied by the storage layer."""

    price: float
    quantity: float
    fee: float = 0.0
    trade_time: datetime | None = None
    side: Literal["buy", "sell"] = "buy"

    @property
    def notional(self) -> float:
        """USD value of the trade excluding fees."""
        return self.price * self.quantity


@dataclass(frozen=True)
class FillResult:
    """Per-level fill state and aggregates derived from a trade history.

    Per-level tuples follow the order of the levels passed to the matcher.
    ``allocated`` and ``off_plan`` are USD for buy ladders and tokens for sell
    ladders; ``allocated_usd`` and ``off_plan_usd`` are always USD.
    """

    side: Literal["buy", "sell"]
    capacity: tuple[float, ...] = ()
    allocated: tuple[float, ...] = ()
    allocated_usd: tuple[float, ...] = ()
    fill_pct: tuple[float, ...] = ()
    planned_total: float = 0.0
    allocated_total: float = 0.0
    off_plan: float = 0.0
    off_plan_usd: float = 0.0
    on_plan_quantity: float = 0.0
    on_plan_avg_cost: float = 0.0

    @property
    def no_plan(self) -> bool:
        """``True`` when the matcher was given no levels."""
        return not self.capacity

    @property
    def fully_allocated(self) -> bool:
        """``True`` once every unit of planned capacity has been filled."""
        if not self.planned_total > 0:
            return False
        return self.allocated_total >= self.planned_total - FILL_EPSILON

    @property
    def remaining(self) -> tuple[float, ...]:
        """Unfilled capacity per level, in the same unit as ``allocated``."""
        return tuple(
            max(0.0, cap - alloc)
            for cap, alloc in zip(self.capacity, self.allocated)
        )


@dataclass(frozen=True)
class BuyPlanner:
    """Persisted configuration of a buy ladder."""

    id: int
    coin_id: str
    top_price: float
    budget_usd: float
    ladder_depth: int = 70
    growth_per_level: float = 1.25
    is_active: bool = True
    started_at: Optional[str] = None


@dataclass(frozen=True)
class SellPlanner:
    """Persisted configuration of a sell ladder."""

    id: int
    coin_id: str
    avg_lock_price: float | None = None
    is_active: bool = True
    started_at: Optional[str] = None
