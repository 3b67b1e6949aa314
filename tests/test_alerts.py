"""Alert cycle tests."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from ladderfill import alerts
from ladderfill.models import BuyPlanner, Level, Trade
from ladderfill.persistence import db

SETTINGS = SimpleNamespace(
    buy_alert_proximity=0.015,
    sell_alert_proximity=0.03,
    discord_alert_notify=True,
)


@pytest.fixture
def sent(monkeypatch):
    """Capture notifications instead of sending them."""
    messages: list[tuple[str, dict]] = []

    def fake_notify(source, message, url=None, *, severity=None, extra=None):
        messages.append((message, dict(extra or {})))
        return True

    monkeypatch.setattr(alerts, "notify_discord", fake_notify)
    return messages


@pytest.fixture
def conn():
    c = db.init_db(":memory:")
    # levels at 75, 50 and 25 with $300 each
    db.insert_buy_planner(c, "bitcoin", 100.0, 900.0, 75, 1.0)
    return c


def test_diff_alert_keys() -> None:
    """The first cycle only records a baseline unless forced."""
    assert alerts.diff_alert_keys(None, ["A"], first_run=True) == (["A"], False)
    assert alerts.diff_alert_keys(None, ["A"], first_run=True, force=True) == (
        ["A"],
        True,
    )
    assert alerts.diff_alert_keys(["A"], ["A", "B"], first_run=False) == (["B"], True)
    assert alerts.diff_alert_keys(["A", "B"], ["A"], first_run=False) == ([], False)
    assert alerts.diff_alert_keys([], [], first_run=False, force=True) == ([], False)


def test_format_alert_message() -> None:
    assert alerts.format_alert_message(["BUY:bitcoin:1"]) == "bitcoin trigger."
    assert (
        alerts.format_alert_message(["BUY:bitcoin:1", "SELL:ethereum:2"])
        == "2 triggers: bitcoin, ethereum."
    )
    assert alerts.keys_to_coins(["BUY:a:1", "CYCLE:a:1", "SELL:b:2"]) == ["a", "b"]


def test_buy_alert_keys_ignore_filled_levels() -> None:
    """A filled level does not alert; a price above the top raises CYCLE."""
    planner = BuyPlanner(1, "bitcoin", 100.0, 1000.0)
    levels = [Level(1, 50.0, 500.0), Level(2, 40.0, 500.0)]
    filled = [Trade(50.0, 10.0)]
    assert alerts.buy_alert_keys(planner, levels, [], 50.4, 0.015) == [
        "BUY:bitcoin:1"
    ]
    assert alerts.buy_alert_keys(planner, levels, filled, 50.4, 0.015) == []
    assert alerts.buy_alert_keys(planner, levels, [], 101.0, 0.015) == [
        "CYCLE:bitcoin:1"
    ]


def test_cycle_records_baseline_then_notifies_new_keys(conn, sent) -> None:
    first = alerts.run_alert_cycle(conn, {"bitcoin": 75.5}, _settings=SETTINGS)
    assert first.first_run
    assert first.current_keys == ("BUY:bitcoin:1",)
    assert not first.sent
    assert sent == []

    again = alerts.run_alert_cycle(conn, {"bitcoin": 75.5}, _settings=SETTINGS)
    assert not again.first_run
    assert again.new_keys == ()
    assert not again.sent

    above = alerts.run_alert_cycle(conn, {"bitcoin": 101.0}, _settings=SETTINGS)
    assert above.new_keys == ("CYCLE:bitcoin:1",)
    assert above.sent
    assert sent == [("bitcoin trigger.", {"keys": ["CYCLE:bitcoin:1"]})]
    assert db.get_alert_state(conn) == ["CYCLE:bitcoin:1"]


def test_force_and_dry_run(conn, sent) -> None:
    """Force sends on the first cycle; dry runs never send."""
    dry = alerts.run_alert_cycle(
        conn, {"bitcoin": 50.2}, dry_run=True, force=True, _settings=SETTINGS
    )
    assert dry.new_keys == ("BUY:bitcoin:1",)
    assert not dry.sent

    forced = alerts.run_alert_cycle(
        conn, {"bitcoin": 50.2}, force=True, scope="forced", _settings=SETTINGS
    )
    assert forced.first_run
    assert forced.sent
    assert len(sent) == 1


def test_filled_trades_silence_buy_alerts(conn, sent) -> None:
    """Once the near level is filled the BUY key disappears."""
    alerts.run_alert_cycle(conn, {"bitcoin": 75.5}, _settings=SETTINGS)
    db.insert_trade(conn, "bitcoin", Trade(75.0, 4.0), buy_planner_id=1)
    result = alerts.run_alert_cycle(conn, {"bitcoin": 75.5}, _settings=SETTINGS)
    assert result.current_keys == ()


def test_sell_planner_alerts(conn, sent) -> None:
    sp = db.insert_sell_planner(conn, "ethereum", 10.0)
    db.insert_sell_levels(conn, sp.id, [Level(1, 15.0, 5.0), Level(2, 20.0, 5.0)])
    result = alerts.run_alert_cycle(
        conn, {"ethereum": 19.5, "bitcoin": 0.0}, _settings=SETTINGS
    )
    assert result.current_keys == (f"SELL:ethereum:{sp.id}",)


def test_notifications_disabled(conn, sent) -> None:
    quiet = SimpleNamespace(**{**vars(SETTINGS), "discord_alert_notify": False})
    result = alerts.run_alert_cycle(
        conn, {"bitcoin": 75.5}, force=True, _settings=quiet
    )
    assert result.new_keys == ("BUY:bitcoin:1",)
    assert not result.sent
    assert sent == []
