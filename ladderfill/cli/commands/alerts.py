"""Alert cycle CLI commands."""

from __future__ import annotations

import json
import time
from typing import List, Optional

import typer

from ladderfill.alerts import run_alert_cycle
from ladderfill.config import settings
from ladderfill.metrics.exporter import ERRORS_TOTAL, start_metrics_server

from ..core import app, log
from ..utils import load_price_file, open_db, parse_prices


def _collect_prices(
    price: list[str] | None, price_file: str | None
) -> dict[str, float]:
    prices: dict[str, float] = {}
    if price_file:
        prices.update(load_price_file(price_file))
    prices.update(parse_prices(price))
    return prices


@app.command("alerts:check")
@app.command("alerts_check")
def alerts_check(
    price: Optional[List[str]] = typer.Option(None, "--price", help="coin=value"),
    price_file: Optional[str] = typer.Option(None, help="JSON file of coin -> price"),
    dry_run: bool = typer.Option(False, help="Evaluate without notifying"),
    force: bool = typer.Option(False, help="Notify on the first cycle too"),
) -> None:
    """Run one near-level alert cycle."""

    try:
        prices = _collect_prices(price, price_file)
    except (OSError, ValueError) as exc:
        log.error("alerts:check cannot load prices: %s", exc)
        raise typer.Exit(code=1)
    if not prices:
        log.error("alerts:check no prices given (use --price or --price-file)")
        raise typer.Exit(code=1)

    conn = open_db()
    try:
        result = run_alert_cycle(conn, prices, dry_run=dry_run, force=force)
    finally:
        conn.close()
    typer.echo(
        json.dumps(
            {
                "keys": list(result.current_keys),
                "new": list(result.new_keys),
                "first_run": result.first_run,
                "sent": result.sent,
                "errors": list(result.errors),
            }
        )
    )


@app.command("alerts:watch")
@app.command("alerts_watch")
def alerts_watch(
    price_file: str = typer.Option(..., help="JSON file of coin -> price"),
    interval: int = typer.Option(
        settings.alert_interval_secs, help="Seconds between cycles"
    ),
    cycles: int = typer.Option(0, help="Stop after N cycles (0 runs forever)"),
    metrics: bool = typer.Option(True, help="Serve Prometheus metrics on PROM_PORT"),
) -> None:
    """Repeat alert cycles on an interval."""

    if metrics:
        start_metrics_server(settings.prom_port)
        log.info("alerts:watch metrics on :%s", settings.prom_port)
    runs = 0
    while True:
        try:
            prices = load_price_file(price_file)
        except (OSError, ValueError) as exc:
            log.error("alerts:watch cannot load prices: %s", exc)
            ERRORS_TOTAL.labels("alerts", "price_file").inc()
            prices = {}
        if prices:
            try:
                conn = open_db()
                try:
                    result = run_alert_cycle(conn, prices)
                finally:
                    conn.close()
            except Exception as exc:
                log.error("alerts:watch cycle failed: %s", exc)
                ERRORS_TOTAL.labels("alerts", "cycle").inc()
            else:
                if result.new_keys:
                    log.info("alerts:watch new keys %s", ", ".join(result.new_keys))
        runs += 1
        if cycles and runs >= cycles:
            break
        time.sleep(max(1, interval))


__all__ = ["alerts_check", "alerts_watch"]
