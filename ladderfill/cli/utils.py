"""Shared helpers used across ladderfill CLI command modules."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from sqlite3 import Connection
from typing import Iterable, Sequence

from ladderfill.config import settings
from ladderfill.engine.touch import is_level_touched
from ladderfill.models import BuyPlanner, FillResult, Level, SellPlanner
from ladderfill.notify import fmt_pct, fmt_usd
from ladderfill.persistence import db

log = logging.getLogger("ladderfill")


def open_db(_settings=settings) -> Connection:
    """Open the configured SQLite database, creating tables as needed."""

    return db.init_db(str(getattr(_settings, "sqlite_path", "ladderfill.db")))


def parse_prices(values: Iterable[str] | None) -> dict[str, float]:
    """Parse ``coin=price`` pairs; malformed entries are logged and ignored."""

    prices: dict[str, float] = {}
    for raw in values or ():
        coin, sep, value = str(raw).partition("=")
        coin = coin.strip().lower()
        if not sep or not coin:
            log.warning("ignoring price %r; expected coin=value", raw)
            continue
        try:
            prices[coin] = float(value)
        except ValueError:
            log.warning("ignoring price %r; value is not a number", raw)
    return prices


def load_price_file(path: str | Path) -> dict[str, float]:
    """Read a JSON object mapping coin ids to prices.

    Nested ``{"bitcoin": {"usd": 60000}}`` objects are also accepted; the
    configured ``price_currency`` is picked from them.
    """

    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    currency = str(getattr(settings, "price_currency", "usd"))
    prices: dict[str, float] = {}
    for coin, value in data.items():
        if isinstance(value, dict):
            value = value.get(currency)
        try:
            prices[str(coin).strip().lower()] = float(value)
        except (TypeError, ValueError):
            continue
    return prices


def active_buy_planner_for(conn: Connection, coin_id: str) -> BuyPlanner | None:
    """Return the newest active buy planner for *coin_id*."""

    for planner in db.active_buy_planners(conn):
        if planner.coin_id == coin_id:
            return planner
    return None


def active_sell_planner_for(conn: Connection, coin_id: str) -> SellPlanner | None:
    """Return the newest active sell planner for *coin_id*."""

    for planner in db.active_sell_planners(conn):
        if planner.coin_id == coin_id:
            return planner
    return None


def format_level_rows(levels: Sequence[Level], unit: str = "usd") -> list[str]:
    """Render planned levels, one line each."""

    lines: list[str] = []
    for lv in levels:
        if lv.drawdown_pct is not None:
            band = f"-{lv.drawdown_pct:g}%"
        elif lv.rise_pct is not None:
            band = f"+{lv.rise_pct:g}%"
        else:
            band = ""
        planned = fmt_usd(lv.capacity) if unit == "usd" else f"{lv.capacity:.8f}"
        lines.append(
            f"L{lv.index:<2} {band:>6}  price={lv.target_price:.8f}  planned={planned}"
        )
    return lines


def format_fill_rows(
    levels: Sequence[Level],
    fills: FillResult,
    live_price: float | None = None,
) -> list[str]:
    """Render per-level fills plus a totals line.

    With ``live_price`` set, rows the price currently touches are marked
    with ``<- live``.
    """

    usd = fills.side == "buy"

    def amount(value: float) -> str:
        return fmt_usd(value) if usd else f"{value:.8f}"

    lines: list[str] = []
    for pos, lv in enumerate(levels):
        row = (
            f"L{lv.index:<2} price={lv.target_price:.8f}  "
            f"planned={amount(fills.capacity[pos])}  "
            f"filled={amount(fills.allocated[pos])}  "
            f"fill={fmt_pct(fills.fill_pct[pos])}"
        )
        if live_price is not None and is_level_touched(
            fills.side, lv.target_price, None, live_price
        ):
            row += "  <- live"
        lines.append(row)
    if fills.no_plan:
        status = "no plan"
    elif fills.fully_allocated:
        status = "done"
    else:
        status = "open"
    lines.append(
        f"total planned={amount(fills.planned_total)} "
        f"filled={amount(fills.allocated_total)} "
        f"off_plan={amount(fills.off_plan)} "
        f"avg_cost={fills.on_plan_avg_cost:.8f} status={status}"
    )
    return lines


__all__ = [
    "active_buy_planner_for",
    "active_sell_planner_for",
    "format_fill_rows",
    "format_level_rows",
    "load_price_file",
    "open_db",
    "parse_prices",
]
