"""SQLite persistence layer for planners, levels, trades and alert state.

Rows are normalised into :mod:`ladderfill.models` objects at this boundary so
the engine never sees ``NULL`` numerics.
"""

from __future__ import annotations

import csv
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from sqlite3 import Connection
from typing import Iterable, Literal

from ..engine.ladder import build_levels
from ..models import BuyPlanner, Level, SellPlanner, Trade

log = logging.getLogger(__name__)


def init_db(db_path: str = "ladderfill.db") -> Connection:
    """Create a database connection and ensure required tables exist."""
    conn = sqlite3.connect(db_path)
    create_schema(conn)
    return conn


def create_schema(conn: Connection) -> None:
    """Create database tables if they are missing."""
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS buy_planners (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            coin_id TEXT NOT NULL,
            top_price REAL NOT NULL,
            budget_usd REAL NOT NULL,
            ladder_depth INTEGER NOT NULL DEFAULT 70,
            growth_per_level REAL NOT NULL DEFAULT 1.25,
            is_active INTEGER NOT NULL DEFAULT 1,
            started_at TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS buy_levels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            buy_planner_id INTEGER NOT NULL,
            level INTEGER NOT NULL,
            drawdown_pct REAL,
            price REAL NOT NULL,
            allocation REAL NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS sell_planners (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            coin_id TEXT NOT NULL,
            avg_lock_price REAL,
            is_active INTEGER NOT NULL DEFAULT 1,
            started_at TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS sell_levels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sell_planner_id INTEGER NOT NULL,
            level INTEGER NOT NULL,
            rise_pct REAL,
            price REAL NOT NULL,
            sell_tokens REAL NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS trades (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            coin_id TEXT NOT NULL,
            side TEXT NOT NULL,
            price REAL NOT NULL,
            quantity REAL NOT NULL,
            fee REAL,
            trade_time TEXT,
            buy_planner_id INTEGER,
            sell_planner_id INTEGER
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS notification_state (
            scope TEXT PRIMARY KEY,
            last_alert_keys TEXT,
            last_alert_count INTEGER,
            updated_at TEXT
        )
        """
    )
    conn.commit()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _num(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def parse_time(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` means UTC."""

    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Planners and levels


def insert_buy_planner(
    conn: Connection,
    coin_id: str,
    top_price: float,
    budget_usd: float,
    ladder_depth: int = 70,
    growth_per_level: float = 1.25,
) -> BuyPlanner:
    """Insert an active buy planner and persist its built levels.

    Any previously active buy planner for ``coin_id`` is deactivated.
    """
    cur = conn.cursor()
    cur.execute(
        "UPDATE buy_planners SET is_active = 0 WHERE coin_id = ? AND is_active = 1",
        (coin_id,),
    )
    started_at = _now_iso()
    cur.execute(
        """
        INSERT INTO buy_planners (
            coin_id, top_price, budget_usd, ladder_depth, growth_per_level,
            is_active, started_at
        ) VALUES (?, ?, ?, ?, ?, 1, ?)
        """,
        (
            coin_id,
            top_price,
            budget_usd,
            int(ladder_depth),
            growth_per_level,
            started_at,
        ),
    )
    planner_id = int(cur.lastrowid)
    for lv in build_levels(top_price, budget_usd, ladder_depth, growth_per_level):
        cur.execute(
            """
            INSERT INTO buy_levels (buy_planner_id, level, drawdown_pct, price, allocation)
            VALUES (?, ?, ?, ?, ?)
            """,
            (planner_id, lv.index, lv.drawdown_pct, lv.target_price, lv.capacity),
        )
    conn.commit()
    return BuyPlanner(
        id=planner_id,
        coin_id=coin_id,
        top_price=float(top_price),
        budget_usd=float(budget_usd),
        ladder_depth=int(ladder_depth),
        growth_per_level=float(growth_per_level),
        is_active=True,
        started_at=started_at,
    )


def insert_sell_planner(
    conn: Connection,
    coin_id: str,
    avg_lock_price: float | None = None,
    levels: Iterable[Level] = (),
) -> SellPlanner:
    """Insert an active sell planner together with its levels.

    The previous active sell planner for ``coin_id`` is deactivated in the
    same transaction, so a failed level insert leaves the old plan active.
    """
    cur = conn.cursor()
    try:
        cur.execute(
            "UPDATE sell_planners SET is_active = 0 "
            "WHERE coin_id = ? AND is_active = 1",
            (coin_id,),
        )
        started_at = _now_iso()
        cur.execute(
            """
            INSERT INTO sell_planners (coin_id, avg_lock_price, is_active, started_at)
            VALUES (?, ?, 1, ?)
            """,
            (coin_id, avg_lock_price, started_at),
        )
        planner_id = int(cur.lastrowid)
        _write_sell_levels(cur, planner_id, levels)
    except Exception:
        conn.rollback()
        raise
    conn.commit()
    return SellPlanner(
        id=planner_id,
        coin_id=coin_id,
        avg_lock_price=avg_lock_price,
        is_active=True,
        started_at=started_at,
    )


def insert_sell_levels(
    conn: Connection, planner_id: int, levels: Iterable[Level]
) -> int:
    """Replace the persisted levels of a sell planner; return the row count."""
    cur = conn.cursor()
    try:
        cur.execute(
            "DELETE FROM sell_levels WHERE sell_planner_id = ?", (planner_id,)
        )
        count = _write_sell_levels(cur, planner_id, levels)
    except Exception:
        conn.rollback()
        raise
    conn.commit()
    return count


def _write_sell_levels(
    cur: sqlite3.Cursor, planner_id: int, levels: Iterable[Level]
) -> int:
    count = 0
    for lv in levels:
        cur.execute(
            """
            INSERT INTO sell_levels (sell_planner_id, level, rise_pct, price, sell_tokens)
            VALUES (?, ?, ?, ?, ?)
            """,
            (planner_id, lv.index, lv.rise_pct, lv.target_price, lv.capacity),
        )
        count += 1
    return count


def _buy_planner_from_row(row: tuple) -> BuyPlanner:
    return BuyPlanner(
        id=int(row[0]),
        coin_id=str(row[1]),
        top_price=_num(row[2]),
        budget_usd=_num(row[3]),
        ladder_depth=int(row[4] or 70),
        growth_per_level=_num(row[5]) or 1.25,
        is_active=bool(row[6]),
        started_at=row[7],
    )


def _sell_planner_from_row(row: tuple) -> SellPlanner:
    return SellPlanner(
        id=int(row[0]),
        coin_id=str(row[1]),
        avg_lock_price=None if row[2] is None else _num(row[2]),
        is_active=bool(row[3]),
        started_at=row[4],
    )


_BUY_PLANNER_COLS = (
    "id, coin_id, top_price, budget_usd, ladder_depth, growth_per_level, "
    "is_active, started_at"
)
_SELL_PLANNER_COLS = "id, coin_id, avg_lock_price, is_active, started_at"


def get_buy_planner(conn: Connection, planner_id: int) -> BuyPlanner:
    """Return the buy planner with ``planner_id`` or raise :class:`LookupError`."""
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_BUY_PLANNER_COLS} FROM buy_planners WHERE id = ?", (planner_id,)
    )
    row = cur.fetchone()
    if row is None:
        raise LookupError(f"buy planner {planner_id} not found")
    return _buy_planner_from_row(row)


def get_sell_planner(conn: Connection, planner_id: int) -> SellPlanner:
    """Return the sell planner with ``planner_id`` or raise :class:`LookupError`."""
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_SELL_PLANNER_COLS} FROM sell_planners WHERE id = ?", (planner_id,)
    )
    row = cur.fetchone()
    if row is None:
        raise LookupError(f"sell planner {planner_id} not found")
    return _sell_planner_from_row(row)


def active_buy_planners(conn: Connection) -> list[BuyPlanner]:
    """Return active buy planners, newest first."""
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_BUY_PLANNER_COLS} FROM buy_planners WHERE is_active = 1 "
        "ORDER BY started_at DESC, id DESC"
    )
    return [_buy_planner_from_row(r) for r in cur.fetchall()]


def active_sell_planners(conn: Connection) -> list[SellPlanner]:
    """Return active sell planners, newest first."""
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_SELL_PLANNER_COLS} FROM sell_planners WHERE is_active = 1 "
        "ORDER BY started_at DESC, id DESC"
    )
    return [_sell_planner_from_row(r) for r in cur.fetchall()]


def load_buy_levels(conn: Connection, planner: BuyPlanner) -> list[Level]:
    """Return persisted levels for *planner*, or build them from its config."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT level, price, allocation, drawdown_pct FROM buy_levels
        WHERE buy_planner_id = ? ORDER BY level ASC
        """,
        (planner.id,),
    )
    rows = cur.fetchall()
    if rows:
        return [
            Level(
                index=int(r[0]),
                target_price=_num(r[1]),
                capacity=max(0.0, _num(r[2])),
                drawdown_pct=None if r[3] is None else _num(r[3]),
            )
            for r in rows
        ]
    log.debug("buy planner %s has no saved levels; building from config", planner.id)
    return build_levels(
        planner.top_price,
        planner.budget_usd,
        planner.ladder_depth,
        planner.growth_per_level,
    )


def load_sell_levels(conn: Connection, planner_id: int) -> list[Level]:
    """Return persisted levels for a sell planner ordered by level."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT level, price, sell_tokens, rise_pct FROM sell_levels
        WHERE sell_planner_id = ? ORDER BY level ASC
        """,
        (planner_id,),
    )
    return [
        Level(
            index=int(r[0]),
            target_price=_num(r[1]),
            capacity=max(0.0, _num(r[2])),
            rise_pct=None if r[3] is None else _num(r[3]),
        )
        for r in cur.fetchall()
    ]


# ---------------------------------------------------------------------------
# Trades


def insert_trade(
    conn: Connection,
    coin_id: str,
    trade: Trade,
    buy_planner_id: int | None = None,
    sell_planner_id: int | None = None,
) -> int:
    """Insert a trade record and return its row id."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO trades (
            coin_id, side, price, quantity, fee, trade_time,
            buy_planner_id, sell_planner_id
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            coin_id,
            trade.side,
            trade.price,
            trade.quantity,
            trade.fee,
            trade.trade_time.isoformat() if trade.trade_time else None,
            buy_planner_id,
            sell_planner_id,
        ),
    )
    conn.commit()
    return cur.lastrowid


def delete_trade(conn: Connection, trade_id: int) -> bool:
    """Delete a trade; return ``True`` when a row was removed."""
    cur = conn.cursor()
    cur.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
    conn.commit()
    return cur.rowcount > 0


def load_trades(
    conn: Connection,
    *,
    side: Literal["buy", "sell"] | None = None,
    coin_id: str | None = None,
    buy_planner_id: int | None = None,
    sell_planner_id: int | None = None,
) -> list[Trade]:
    """Return trades matching every supplied filter in insertion order."""
    clauses: list[str] = []
    params: list[object] = []
    for column, value in (
        ("side", side),
        ("coin_id", coin_id),
        ("buy_planner_id", buy_planner_id),
        ("sell_planner_id", sell_planner_id),
    ):
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    cur = conn.cursor()
    cur.execute(
        f"SELECT price, quantity, fee, trade_time, side FROM trades{where} ORDER BY id",
        params,
    )
    return [
        Trade(
            price=_num(r[0]),
            quantity=_num(r[1]),
            fee=_num(r[2]),
            trade_time=parse_time(r[3]),
            side="sell" if str(r[4]).lower() == "sell" else "buy",
        )
        for r in cur.fetchall()
    ]


def import_trades_csv(
    conn: Connection,
    path: str | Path,
    coin_id: str,
    buy_planner_id: int | None = None,
    sell_planner_id: int | None = None,
) -> tuple[int, int]:
    """Import trades from a CSV file.

    The header must name ``trade_time,side,price,quantity,fee``.

    Buy rows are tagged with ``buy_planner_id`` and sell rows with
    ``sell_planner_id``. Rows that cannot be parsed are skipped.

    Returns
    -------
    tuple[int, int]
        ``(imported, skipped)`` row counts.
    """

    imported = 0
    skipped = 0
    with open(path, newline="", encoding="utf-8") as fh:
        for row in csv.DictReader(fh):
            side = str(row.get("side") or "").strip().lower()
            try:
                price = float(row.get("price") or "")
                quantity = float(row.get("quantity") or "")
                fee = float((row.get("fee") or "").strip() or 0.0)
            except ValueError:
                skipped += 1
                continue
            if side not in ("buy", "sell") or not (price > 0 and quantity > 0):
                skipped += 1
                continue
            trade = Trade(
                price=price,
                quantity=quantity,
                fee=max(fee, 0.0),
                trade_time=parse_time(row.get("trade_time")),
                side=side,  # type: ignore[arg-type]
            )
            insert_trade(
                conn,
                coin_id,
                trade,
                buy_planner_id=buy_planner_id if side == "buy" else None,
                sell_planner_id=sell_planner_id if side == "sell" else None,
            )
            imported += 1
    if skipped:
        log.warning(
            "import_trades_csv: skipped %d unparsable rows from %s", skipped, path
        )
    return imported, skipped


# ---------------------------------------------------------------------------
# Alert state


def get_alert_state(conn: Connection, scope: str = "default") -> list[str] | None:
    """Return the alert keys stored by the previous cycle.

    ``None`` means no cycle has run yet for *scope*.
    """
    cur = conn.cursor()
    cur.execute(
        "SELECT last_alert_keys FROM notification_state WHERE scope = ?", (scope,)
    )
    row = cur.fetchone()
    if row is None:
        return None
    raw = (row[0] or "").strip()
    return [k for k in raw.split("|") if k] if raw else []


def save_alert_state(
    conn: Connection, keys: Iterable[str], scope: str = "default"
) -> None:
    """Store *keys* as the current alert state for *scope*."""
    ordered = sorted(keys)
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO notification_state (scope, last_alert_keys, last_alert_count, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(scope) DO UPDATE SET
            last_alert_keys = excluded.last_alert_keys,
            last_alert_count = excluded.last_alert_count,
            updated_at = excluded.updated_at
        """,
        (scope, "|".join(ordered), len(ordered), _now_iso()),
    )
    conn.commit()
