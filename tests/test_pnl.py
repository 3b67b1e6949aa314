"""PnL and average price tests."""

from datetime import datetime, timedelta, timezone

import pytest

from ladderfill.engine.pnl import compute_pnl, weighted_avg_price
from ladderfill.models import Trade

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def test_compute_pnl_running_average() -> None:
    """Fees fold into the average cost and reduce realised PnL."""
    trades = [
        Trade(100.0, 10.0, 1.0, T0, "buy"),
        Trade(300.0, 5.0, 2.0, T0 + timedelta(days=2), "sell"),
        Trade(200.0, 10.0, 1.0, T0 + timedelta(days=1), "buy"),
    ]
    res = compute_pnl(trades)
    assert res.position_qty == pytest.approx(15.0)
    assert res.avg_cost == pytest.approx(150.1)
    assert res.realized_pnl == pytest.approx(747.5)
    assert res.total_fees == pytest.approx(4.0)
    assert res.cost_basis == pytest.approx(150.1 * 15)


def test_compute_pnl_flat_position_resets_cost() -> None:
    trades = [
        Trade(10.0, 2.0, 0.0, T0, "buy"),
        Trade(15.0, 2.0, 0.0, T0 + timedelta(hours=1), "sell"),
    ]
    res = compute_pnl(trades)
    assert res.position_qty == 0.0
    assert res.avg_cost == 0.0
    assert res.cost_basis == 0.0
    assert res.realized_pnl == pytest.approx(10.0)


def test_weighted_avg_price() -> None:
    rows = [
        {"price": 10.0, "quantity": 1.0},
        {"price": 20.0, "quantity": 3.0},
        {"price": None, "quantity": 5.0},
        {"price": 99.0, "quantity": 0.0},
    ]
    assert weighted_avg_price(rows) == pytest.approx(17.5)
    assert weighted_avg_price([]) is None
