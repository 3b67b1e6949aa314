"""Prometheus metrics collectors and helpers.

This module exposes counters and gauges for tracking fill computations and
alerts as well as a helper for starting the metrics HTTP server.
"""

from prometheus_client import Counter, Gauge, start_http_server

# Metric collectors
FILL_RUNS_TOTAL = Counter("fill_runs_total", "Fill computations executed", ["side"])
LADDER_FILL_RATIO = Gauge(
    "ladder_fill_ratio",
    "Allocated over planned capacity per planner",
    ["side", "planner"],
)
OFF_PLAN_USD = Gauge(
    "off_plan_usd", "Trade notional not absorbed by the ladder", ["side", "planner"]
)
ALERTS_TOTAL = Counter("alerts_total", "Alert keys raised", ["kind"])
ALERT_SENDS_TOTAL = Counter("alert_sends_total", "Alert notifications sent")
ERRORS_TOTAL = Counter("errors_total", "Total errors encountered", ["source", "stage"])


def record_fill(side: str, planner: str, fills) -> None:
    """Update fill gauges for one planner from a ``FillResult``."""

    FILL_RUNS_TOTAL.labels(side).inc()
    ratio = 0.0
    if fills.planned_total > 0:
        ratio = fills.allocated_total / fills.planned_total
    LADDER_FILL_RATIO.labels(side, planner).set(ratio)
    OFF_PLAN_USD.labels(side, planner).set(fills.off_plan_usd)


def start_metrics_server(port: int) -> None:
    """Start the Prometheus metrics server on the provided ``port``.

    Parameters
    ----------
    port:
        TCP port to bind the HTTP server to.
    """

    # Be tolerant of env-sourced strings like "9110".
    start_http_server(int(port))
