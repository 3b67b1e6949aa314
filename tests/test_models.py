"""Model helper tests."""

from ladderfill.models import FillResult, Level, Trade


def test_level_est_tokens() -> None:
    assert Level(1, 50.0, 500.0).est_tokens == 10.0
    assert Level(1, 0.0, 500.0).est_tokens == 0.0


def test_trade_notional_excludes_fee() -> None:
    assert Trade(40.0, 2.5, fee=3.0).notional == 100.0


def test_fill_result_properties() -> None:
    """Status helpers reflect the allocation state."""
    res = FillResult(
        side="buy",
        capacity=(500.0, 500.0),
        allocated=(500.0, 100.0),
        planned_total=1000.0,
        allocated_total=600.0,
    )
    assert not res.no_plan
    assert not res.fully_allocated
    assert res.remaining == (0.0, 400.0)
    assert FillResult(side="sell").no_plan
    assert not FillResult(side="sell").fully_allocated
