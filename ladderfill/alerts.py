"""Near-level alert evaluation for buy and sell planners.

An alert cycle turns live prices plus stored planners and trades into a set of
alert keys, compares them with the keys stored by the previous cycle and sends
one notification when new keys appear.

Key formats:

* ``BUY:<coin>:<planner>``  live price near an unfilled buy level
* ``SELL:<coin>:<planner>`` live price near an unfilled sell level
* ``CYCLE:<coin>:<planner>`` live price above the buy planner's top price
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from sqlite3 import Connection
from typing import Iterable, Mapping, Sequence

from .config import settings
from .engine.fills import compute_buy_fills, compute_sell_fills
from .engine.touch import unfilled_levels_near
from .metrics.exporter import ALERT_SENDS_TOTAL, ALERTS_TOTAL, ERRORS_TOTAL, record_fill
from .models import BuyPlanner, Level, SellPlanner, Trade
from .notify import notify_discord
from .persistence import db

log = logging.getLogger("ladderfill")


@dataclass(frozen=True)
class AlertCycleResult:
    """Outcome of one alert cycle."""

    current_keys: tuple[str, ...]
    new_keys: tuple[str, ...]
    first_run: bool
    sent: bool
    errors: tuple[str, ...] = ()


def buy_alert_keys(
    planner: BuyPlanner,
    levels: Sequence[Level],
    trades: Iterable[Trade],
    live_price: float,
    proximity: float,
) -> list[str]:
    """Return alert keys raised by one buy planner at ``live_price``.

    Fills are computed in strict mode so only trades at or below a level
    count toward it.
    """

    keys: list[str] = []
    if live_price > 0 and planner.top_price > 0 and live_price > planner.top_price:
        keys.append(f"CYCLE:{planner.coin_id}:{planner.id}")
    if not levels or not live_price > 0:
        return keys
    fills = compute_buy_fills(levels, trades, 0.0)
    record_fill("buy", str(planner.id), fills)
    if unfilled_levels_near(levels, fills, live_price, proximity):
        keys.append(f"BUY:{planner.coin_id}:{planner.id}")
    return keys


def sell_alert_keys(
    planner: SellPlanner,
    levels: Sequence[Level],
    trades: Iterable[Trade],
    live_price: float,
    proximity: float,
) -> list[str]:
    """Return alert keys raised by one sell planner at ``live_price``."""

    if not levels or not live_price > 0:
        return []
    fills = compute_sell_fills(levels, trades, 0.0)
    record_fill("sell", str(planner.id), fills)
    if unfilled_levels_near(levels, fills, live_price, proximity):
        return [f"SELL:{planner.coin_id}:{planner.id}"]
    return []


def diff_alert_keys(
    previous: Iterable[str] | None,
    current: Iterable[str],
    *,
    first_run: bool,
    force: bool = False,
) -> tuple[list[str], bool]:
    """Return ``(new_keys, should_send)``.

    A notification goes out when keys appeared since the previous cycle,
    except on the very first cycle, which only records a baseline unless
    ``force`` is set.
    """

    seen = set(previous or ())
    new_keys = [k for k in sorted(set(current)) if k not in seen]
    has_new = bool(new_keys)
    should_send = (not first_run and has_new) or (force and has_new)
    return new_keys, should_send


def keys_to_coins(keys: Iterable[str]) -> list[str]:
    """Return the distinct coin ids named by *keys* in first-seen order."""

    coins: list[str] = []
    for key in keys:
        parts = key.split(":")
        if len(parts) >= 2 and parts[1] not in coins:
            coins.append(parts[1])
    return coins


def format_alert_message(new_keys: Sequence[str]) -> str:
    """Build the one-line headline for a set of new alert keys."""

    coins = keys_to_coins(new_keys)[:3]
    if len(coins) == 1:
        return f"{coins[0]} trigger."
    return f"{len(coins)} triggers: {', '.join(coins)}."


def run_alert_cycle(
    conn: Connection,
    prices: Mapping[str, float],
    *,
    dry_run: bool = False,
    force: bool = False,
    scope: str = "default",
    _settings=settings,
) -> AlertCycleResult:
    """Evaluate every active planner against ``prices`` and notify on new keys.

    Parameters
    ----------
    conn:
        Open database connection.
    prices:
        Live price per coin id. Coins without a positive price are skipped.
    dry_run:
        Evaluate and store state but never send a notification.
    force:
        Send even on the first cycle when there are new keys.
    scope:
        Notification state bucket, allowing independent alert streams.
    """

    current: list[str] = []
    errors: list[str] = []
    buy_proximity = float(getattr(_settings, "buy_alert_proximity", 0.015))
    sell_proximity = float(getattr(_settings, "sell_alert_proximity", 0.03))

    for bp in db.active_buy_planners(conn):
        live = float(prices.get(bp.coin_id) or 0.0)
        if not live > 0:
            continue
        try:
            levels = db.load_buy_levels(conn, bp)
            trades = db.load_trades(conn, side="buy", buy_planner_id=bp.id)
            current.extend(buy_alert_keys(bp, levels, trades, live, buy_proximity))
        except Exception as exc:
            log.error("alerts: buy planner %s evaluation failed: %s", bp.id, exc)
            ERRORS_TOTAL.labels("alerts", "buy_eval").inc()
            errors.append(f"buy:{bp.id}:{exc}")

    for sp in db.active_sell_planners(conn):
        live = float(prices.get(sp.coin_id) or 0.0)
        if not live > 0:
            continue
        try:
            levels = db.load_sell_levels(conn, sp.id)
            trades = db.load_trades(conn, side="sell", sell_planner_id=sp.id)
            current.extend(sell_alert_keys(sp, levels, trades, live, sell_proximity))
        except Exception as exc:
            log.error("alerts: sell planner %s evaluation failed: %s", sp.id, exc)
            ERRORS_TOTAL.labels("alerts", "sell_eval").inc()
            errors.append(f"sell:{sp.id}:{exc}")

    current = sorted(set(current))
    for key in current:
        ALERTS_TOTAL.labels(key.split(":", 1)[0].lower()).inc()

    previous = db.get_alert_state(conn, scope)
    first_run = previous is None
    new_keys, should_send = diff_alert_keys(
        previous, current, first_run=first_run, force=force
    )

    sent = False
    if should_send and not dry_run:
        if getattr(_settings, "discord_alert_notify", True):
            sent = notify_discord(
                "alerts",
                format_alert_message(new_keys),
                extra={"keys": new_keys},
            )
            if sent:
                ALERT_SENDS_TOTAL.inc()
        else:
            log.info("alerts: notifications disabled; new keys=%s", new_keys)

    db.save_alert_state(conn, current, scope)
    log.info(
        "alerts: keys=%d new=%d first_run=%s sent=%s",
        len(current),
        len(new_keys),
        first_run,
        sent,
    )
    return AlertCycleResult(
        current_keys=tuple(current),
        new_keys=tuple(new_keys),
        first_run=first_run,
        sent=sent,
        errors=tuple(errors),
    )
