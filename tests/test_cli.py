"""CLI command tests for the ladderfill app."""

from __future__ import annotations

import json
import sqlite3

import pytest
from typer.testing import CliRunner

from ladderfill import cli
from ladderfill.cli.commands import alerts as alerts_cmd
from ladderfill.config import settings
from ladderfill.metrics.exporter import ERRORS_TOTAL

runner = CliRunner()


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch, tmp_path):
    """Point every command at a throwaway database."""
    path = tmp_path / "cli.db"
    monkeypatch.setattr(settings, "sqlite_path", str(path))
    monkeypatch.setattr(settings, "buy_fill_tolerance", 0.0)
    monkeypatch.setattr(settings, "sell_fill_tolerance", 0.0)
    monkeypatch.setattr(settings, "discord_webhook_url", None)
    return path


def _invoke(*args: str):
    return runner.invoke(cli.app, list(args))


def _seed_buy_planner() -> None:
    res = _invoke(
        "planner:buy", "bitcoin", "--top", "100", "--budget", "900",
        "--depth", "75", "--growth", "1.0",
    )
    assert res.exit_code == 0, res.output
    res = _invoke(
        "trades:add", "bitcoin", "buy", "50", "8", "--time", "2025-01-01T00:00:00Z"
    )
    assert res.exit_code == 0, res.output


def test_ladder_build_preview():
    res = _invoke("ladder:build", "--top", "100", "--budget", "900", "--depth", "75")
    assert res.exit_code == 0
    assert "price=75.00000000" in res.output
    assert "price=25.00000000" in res.output
    assert "total planned=$900.00" in res.output


def test_ladder_build_rejects_bad_top():
    res = _invoke("ladder_build", "--top", "0", "--budget", "900")
    assert res.exit_code == 1


def test_ladder_sell_preview():
    res = _invoke("ladder:sell", "--baseline", "10", "--tokens", "100", "--levels", "3")
    assert res.exit_code == 0
    assert "price=15.00000000" in res.output
    assert "planned=56.25000000" in res.output


def test_buy_planner_fill_flow():
    """Saved planner, recorded trade and reconciliation line up."""
    _seed_buy_planner()
    res = _invoke("fills:buy", "1", "--tolerance", "0")
    assert res.exit_code == 0
    lines = res.output.splitlines()
    assert "filled=$300.00" in lines[1] and "fill=100.0%" in lines[1]
    assert "filled=$100.00" in lines[2] and "fill=33.3%" in lines[2]
    assert "off_plan=$0.00" in lines[-1]
    assert "status=open" in lines[-1]


def test_fills_unknown_planner_exits_nonzero():
    assert _invoke("fills:buy", "99").exit_code == 1
    assert _invoke("fills:sell", "99").exit_code == 1


def test_trades_add_validates_side():
    res = _invoke("trades:add", "bitcoin", "hold", "50", "1")
    assert res.exit_code == 1


def test_trades_delete():
    _seed_buy_planner()
    assert _invoke("trades:delete", "1").exit_code == 0
    assert _invoke("trades:delete", "1").exit_code == 1


def test_trades_import(tmp_path):
    path = tmp_path / "t.csv"
    path.write_text(
        "trade_time,side,price,quantity,fee\n"
        "2025-01-01T00:00:00Z,buy,40,2,0\n"
        "bad,buy,,1,0\n"
    )
    res = _invoke("trades:import", str(path), "bitcoin")
    assert res.exit_code == 0
    assert "imported=1 skipped=1" in res.output


def test_pnl_reports_position():
    _seed_buy_planner()
    res = _invoke("pnl", "bitcoin")
    assert res.exit_code == 0
    assert "position=8.00000000" in res.output
    assert "avg_cost=50.00000000" in res.output


def test_sell_planner_defaults_to_on_plan_cost():
    """Without --baseline the sell ladder starts from the buy average."""
    _seed_buy_planner()
    res = _invoke("planner:sell", "bitcoin", "--tokens", "8", "--levels", "2")
    assert res.exit_code == 0, res.output
    assert "baseline=50.00000000" in res.output
    assert "price=75.00000000" in res.output

    sell = _invoke("trades:add", "bitcoin", "sell", "80", "3")
    assert "planner=1" in sell.output
    res = _invoke("fills:sell", "1")
    assert res.exit_code == 0
    assert "proceeds=$160.00" in res.output


def test_sell_planner_needs_baseline_source():
    res = _invoke("planner:sell", "dogecoin", "--tokens", "8")
    assert res.exit_code == 1


def test_alerts_check_dry_run():
    _seed_buy_planner()
    res = _invoke("alerts:check", "--price", "bitcoin=50.2", "--dry-run")
    assert res.exit_code == 0
    payload = json.loads(res.stdout.strip().splitlines()[-1])
    assert payload["keys"] == ["BUY:bitcoin:1"]
    assert payload["first_run"] is True
    assert payload["sent"] is False


def test_alerts_check_reads_price_file(tmp_path):
    _seed_buy_planner()
    prices = tmp_path / "prices.json"
    prices.write_text(json.dumps({"Bitcoin": {"usd": 120.0}}))
    res = _invoke("alerts:check", "--price-file", str(prices), "--dry-run")
    assert res.exit_code == 0
    payload = json.loads(res.stdout.strip().splitlines()[-1])
    assert payload["keys"] == ["CYCLE:bitcoin:1"]


def test_alerts_check_requires_prices():
    assert _invoke("alerts:check").exit_code == 1


def test_notify_test_without_webhook():
    assert _invoke("notify:test").exit_code == 0


def test_help_verbose_for_command(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.app(args=["ladder:build", "--help-verbose"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "Preview a buy ladder" in out
    assert "fills:buy" not in out


def test_alerts_watch_survives_failed_cycles(monkeypatch, tmp_path):
    """A cycle error is logged and counted; the loop keeps going."""
    prices = tmp_path / "prices.json"
    prices.write_text(json.dumps({"bitcoin": 50.0}))
    calls: list[dict] = []

    def locked(conn, price_map, **kwargs):
        calls.append(dict(price_map))
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(alerts_cmd, "run_alert_cycle", locked)
    monkeypatch.setattr(alerts_cmd.time, "sleep", lambda seconds: None)
    before = ERRORS_TOTAL.labels("alerts", "cycle")._value.get()

    res = _invoke(
        "alerts:watch", "--price-file", str(prices), "--cycles", "3", "--no-metrics"
    )
    assert res.exit_code == 0
    assert calls == [{"bitcoin": 50.0}] * 3
    assert ERRORS_TOTAL.labels("alerts", "cycle")._value.get() == before + 3


def test_fills_buy_marks_touched_level():
    """A live price within five cents of a level highlights that row."""
    _seed_buy_planner()
    res = _invoke("fills:buy", "1", "--price", "50.03")
    assert res.exit_code == 0
    lines = res.output.splitlines()
    assert lines[2].endswith("<- live")
    assert "<- live" not in lines[1]
    assert "<- live" not in lines[3]
