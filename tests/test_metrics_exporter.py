import pytest

pytest.importorskip("prometheus_client")

from ladderfill.metrics import exporter
from ladderfill.models import FillResult


def test_record_fill_sets_planner_gauges():
    before = exporter.FILL_RUNS_TOTAL.labels("buy")._value.get()
    fills = FillResult(
        side="buy",
        capacity=(500.0, 500.0),
        allocated=(500.0, 250.0),
        planned_total=1000.0,
        allocated_total=750.0,
        off_plan_usd=12.5,
    )
    exporter.record_fill("buy", "metrics-test", fills)
    assert exporter.FILL_RUNS_TOTAL.labels("buy")._value.get() == before + 1
    ratio = exporter.LADDER_FILL_RATIO.labels("buy", "metrics-test")._value.get()
    assert ratio == 0.75
    off = exporter.OFF_PLAN_USD.labels("buy", "metrics-test")._value.get()
    assert off == 12.5


def test_record_fill_without_plan():
    exporter.record_fill("sell", "metrics-empty", FillResult(side="sell"))
    ratio = exporter.LADDER_FILL_RATIO.labels("sell", "metrics-empty")._value.get()
    assert ratio == 0.0
