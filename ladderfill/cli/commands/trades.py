"""Trade entry CLI commands."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from ladderfill.models import Trade
from ladderfill.persistence import db

from ..core import app, log
from ..utils import active_buy_planner_for, active_sell_planner_for, open_db


@app.command("trades:add")
@app.command("trades_add")
def trades_add(
    coin: str = typer.Argument(..., help="Coin id"),
    side: str = typer.Argument(..., help="buy or sell"),
    price: float = typer.Argument(..., help="Execution price"),
    quantity: float = typer.Argument(..., help="Base-asset quantity"),
    fee: float = typer.Option(0.0, help="Fee in USD"),
    time: str | None = typer.Option(None, help="ISO-8601 trade time (default: now)"),
    planner: int | None = typer.Option(None, help="Planner id to tag the trade with"),
) -> None:
    """Record one executed trade."""

    side = side.strip().lower()
    if side not in ("buy", "sell"):
        log.error("trades:add side must be buy or sell, got %r", side)
        raise typer.Exit(code=1)
    if not (price > 0 and quantity > 0) or fee < 0:
        log.error("trades:add needs price > 0, quantity > 0 and fee >= 0")
        raise typer.Exit(code=1)
    trade_time = db.parse_time(time) if time else datetime.now(timezone.utc)
    if time and trade_time is None:
        log.error("trades:add could not parse --time %r", time)
        raise typer.Exit(code=1)

    coin_id = coin.strip().lower()
    conn = open_db()
    try:
        planner_id = planner
        if planner_id is None:
            found = (
                active_buy_planner_for(conn, coin_id)
                if side == "buy"
                else active_sell_planner_for(conn, coin_id)
            )
            planner_id = found.id if found else None
        trade = Trade(price, quantity, fee, trade_time, side)  # type: ignore[arg-type]
        trade_id = db.insert_trade(
            conn,
            coin_id,
            trade,
            buy_planner_id=planner_id if side == "buy" else None,
            sell_planner_id=planner_id if side == "sell" else None,
        )
    finally:
        conn.close()
    tag = f" planner={planner_id}" if planner_id is not None else " (off-planner)"
    typer.echo(f"trade {trade_id} {side} {quantity:g} {coin_id} @ {price:g}{tag}")


@app.command("trades:import")
@app.command("trades_import")
def trades_import(
    path: str = typer.Argument(..., help="CSV with trade_time,side,price,quantity,fee"),
    coin: str = typer.Argument(..., help="Coin id"),
) -> None:
    """Import trades from a CSV file."""

    coin_id = coin.strip().lower()
    conn = open_db()
    try:
        bp = active_buy_planner_for(conn, coin_id)
        sp = active_sell_planner_for(conn, coin_id)
        try:
            imported, skipped = db.import_trades_csv(
                conn,
                path,
                coin_id,
                buy_planner_id=bp.id if bp else None,
                sell_planner_id=sp.id if sp else None,
            )
        except OSError as exc:
            log.error("trades:import cannot read %s: %s", path, exc)
            raise typer.Exit(code=1)
    finally:
        conn.close()
    typer.echo(f"imported={imported} skipped={skipped}")


@app.command("trades:delete")
@app.command("trades_delete")
def trades_delete(trade_id: int = typer.Argument(..., help="Trade row id")) -> None:
    """Delete a recorded trade."""

    conn = open_db()
    try:
        removed = db.delete_trade(conn, trade_id)
    finally:
        conn.close()
    if not removed:
        log.error("trades:delete no trade %s", trade_id)
        raise typer.Exit(code=1)
    typer.echo(f"deleted trade {trade_id}")


__all__ = ["trades_add", "trades_delete", "trades_import"]
