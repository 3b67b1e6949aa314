"""Fill reconciliation and PnL CLI commands."""

from __future__ import annotations

import typer

from ladderfill.config import settings
from ladderfill.engine.fills import compute_buy_fills, compute_sell_fills
from ladderfill.engine.pnl import compute_pnl
from ladderfill.metrics.exporter import record_fill
from ladderfill.notify import fmt_usd
from ladderfill.persistence import db

from ..core import app, log
from ..utils import format_fill_rows, open_db


def _pick_tolerance(
    override: float | None, live: bool, strict: float, lenient: float
) -> float:
    if override is not None:
        return max(0.0, override)
    return lenient if live else strict


@app.command("fills:buy")
@app.command("fills_buy")
def fills_buy(
    planner: int = typer.Argument(..., help="Buy planner id"),
    tolerance: float | None = typer.Option(None, help="Eligibility band override"),
    live: bool = typer.Option(False, help="Use the lenient live tolerance"),
    price: float | None = typer.Option(None, help="Live price to highlight"),
) -> None:
    """Show per-level fills for a buy planner."""

    tol = _pick_tolerance(
        tolerance, live, settings.buy_fill_tolerance, settings.live_buy_tolerance
    )
    conn = open_db()
    try:
        try:
            bp = db.get_buy_planner(conn, planner)
        except LookupError as exc:
            log.error("fills:buy %s", exc)
            raise typer.Exit(code=1)
        levels = db.load_buy_levels(conn, bp)
        trades = db.load_trades(conn, side="buy", buy_planner_id=bp.id)
    finally:
        conn.close()
    fills = compute_buy_fills(levels, trades, tol)
    record_fill("buy", str(bp.id), fills)
    log.debug("fills:buy planner=%s trades=%d tolerance=%s", bp.id, len(trades), tol)
    typer.echo(f"buy planner {bp.id} {bp.coin_id} tolerance={tol:g}")
    for line in format_fill_rows(levels, fills, price):
        typer.echo(line)


@app.command("fills:sell")
@app.command("fills_sell")
def fills_sell(
    planner: int = typer.Argument(..., help="Sell planner id"),
    tolerance: float | None = typer.Option(None, help="Eligibility band override"),
    live: bool = typer.Option(False, help="Use the lenient live tolerance"),
    price: float | None = typer.Option(None, help="Live price to highlight"),
) -> None:
    """Show per-level fills for a sell planner."""

    tol = _pick_tolerance(
        tolerance, live, settings.sell_fill_tolerance, settings.live_sell_tolerance
    )
    conn = open_db()
    try:
        try:
            sp = db.get_sell_planner(conn, planner)
        except LookupError as exc:
            log.error("fills:sell %s", exc)
            raise typer.Exit(code=1)
        levels = db.load_sell_levels(conn, sp.id)
        trades = db.load_trades(conn, side="sell", sell_planner_id=sp.id)
    finally:
        conn.close()
    fills = compute_sell_fills(levels, trades, tol)
    record_fill("sell", str(sp.id), fills)
    typer.echo(f"sell planner {sp.id} {sp.coin_id} tolerance={tol:g}")
    for line in format_fill_rows(levels, fills, price):
        typer.echo(line)
    typer.echo(
        f"proceeds={fmt_usd(sum(fills.allocated_usd))} "
        f"off_plan_usd={fmt_usd(fills.off_plan_usd)}"
    )


@app.command("pnl")
def pnl(coin: str = typer.Argument(..., help="Coin id")) -> None:
    """Show position, average cost and realised PnL for a coin."""

    conn = open_db()
    try:
        trades = db.load_trades(conn, coin_id=coin.strip().lower())
    finally:
        conn.close()
    result = compute_pnl(trades)
    typer.echo(
        f"position={result.position_qty:.8f} avg_cost={result.avg_cost:.8f} "
        f"cost_basis={fmt_usd(result.cost_basis)} "
        f"realized={fmt_usd(result.realized_pnl)} "
        f"fees={fmt_usd(result.total_fees)}"
    )


__all__ = ["fills_buy", "fills_sell", "pnl"]
