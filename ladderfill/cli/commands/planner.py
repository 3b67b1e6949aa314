"""Planner management CLI commands."""

from __future__ import annotations

import typer

from ladderfill.config import settings
from ladderfill.engine.fills import compute_buy_fills
from ladderfill.engine.ladder import build_sell_levels, coerce_depth
from ladderfill.persistence import db

from ..core import app, log
from ..utils import active_buy_planner_for, format_level_rows, open_db


@app.command("planner:buy")
@app.command("planner_buy")
def planner_buy(
    coin: str = typer.Argument(..., help="Coin id, e.g. bitcoin"),
    top: float = typer.Option(..., help="Top-of-cycle price"),
    budget: float = typer.Option(..., help="USD budget for the ladder"),
    depth: int = typer.Option(settings.default_ladder_depth, help="70, 75 or 90"),
    growth: float = typer.Option(settings.default_growth, help="Level weight ratio"),
) -> None:
    """Save an active buy planner and its levels."""

    if coerce_depth(depth) is None:
        log.error("planner:buy unsupported depth %s (use 70, 75 or 90)", depth)
        raise typer.Exit(code=1)
    if not (top > 0 and budget >= 0):
        log.error("planner:buy needs --top > 0 and --budget >= 0")
        raise typer.Exit(code=1)
    conn = open_db()
    try:
        planner = db.insert_buy_planner(
            conn, coin.strip().lower(), top, budget, depth, growth
        )
        levels = db.load_buy_levels(conn, planner)
    finally:
        conn.close()
    typer.echo(f"buy planner {planner.id} for {planner.coin_id}")
    for line in format_level_rows(levels):
        typer.echo(line)


@app.command("planner:sell")
@app.command("planner_sell")
def planner_sell(
    coin: str = typer.Argument(..., help="Coin id, e.g. bitcoin"),
    tokens: float = typer.Option(..., help="Tokens to distribute"),
    baseline: float | None = typer.Option(
        None, help="Baseline price; defaults to the on-plan average buy cost"
    ),
    step: float = typer.Option(50.0, help="Percent rise per level"),
    levels: int = typer.Option(5, help="Number of levels (1..60)"),
    pct: float = typer.Option(25.0, help="Percent of remaining tokens per level"),
) -> None:
    """Save an active sell planner and its levels."""

    coin_id = coin.strip().lower()
    conn = open_db()
    try:
        base = baseline
        if base is None:
            bp = active_buy_planner_for(conn, coin_id)
            if bp is not None:
                fills = compute_buy_fills(
                    db.load_buy_levels(conn, bp),
                    db.load_trades(conn, side="buy", buy_planner_id=bp.id),
                    settings.buy_fill_tolerance,
                )
                base = fills.on_plan_avg_cost
        if not base or not base > 0:
            log.error("planner:sell need at least one on-plan buy or --baseline")
            raise typer.Exit(code=1)
        rows = build_sell_levels(base, tokens, step, levels, pct)
        if not rows:
            log.error("planner:sell no levels (check --tokens, --step and --levels)")
            raise typer.Exit(code=1)
        planner = db.insert_sell_planner(conn, coin_id, base, rows)
    finally:
        conn.close()
    typer.echo(f"sell planner {planner.id} for {coin_id} baseline={base:.8f}")
    for line in format_level_rows(rows, unit="tokens"):
        typer.echo(line)


__all__ = ["planner_buy", "planner_sell"]
