"""Ladder preview CLI commands."""

from __future__ import annotations

import typer

from ladderfill.config import settings
from ladderfill.engine.ladder import build_levels, build_sell_levels
from ladderfill.notify import fmt_usd

from ..core import app, log
from ..utils import format_level_rows


@app.command("ladder:build")
@app.command("ladder_build")
def ladder_build(
    top: float = typer.Option(..., help="Top-of-cycle price"),
    budget: float = typer.Option(..., help="USD budget for the ladder"),
    depth: int = typer.Option(settings.default_ladder_depth, help="70, 75 or 90"),
    growth: float = typer.Option(settings.default_growth, help="Level weight ratio"),
) -> None:
    """Preview buy levels for a top price and budget."""

    levels = build_levels(top, budget, depth, growth)
    if not levels:
        log.error("ladder:build no levels (check --top, --budget and --depth)")
        raise typer.Exit(code=1)
    for line in format_level_rows(levels):
        typer.echo(line)
    typer.echo(f"total planned={fmt_usd(sum(lv.capacity for lv in levels))}")


@app.command("ladder:sell")
@app.command("ladder_sell")
def ladder_sell(
    baseline: float = typer.Option(..., help="Baseline price, usually avg cost"),
    tokens: float = typer.Option(..., help="Tokens to distribute"),
    step: float = typer.Option(50.0, help="Percent rise per level"),
    levels: int = typer.Option(5, help="Number of levels (1..60)"),
    pct: float = typer.Option(25.0, help="Percent of remaining tokens per level"),
) -> None:
    """Preview sell levels above a baseline price."""

    rows = build_sell_levels(baseline, tokens, step, levels, pct)
    if not rows:
        log.error("ladder:sell no levels (check --baseline, --tokens and --levels)")
        raise typer.Exit(code=1)
    for line in format_level_rows(rows, unit="tokens"):
        typer.echo(line)


__all__ = ["ladder_build", "ladder_sell"]
