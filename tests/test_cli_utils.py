"""Tests for CLI formatting helpers."""

from ladderfill.cli.utils import format_fill_rows, parse_prices
from ladderfill.engine.fills import compute_sell_fills
from ladderfill.models import Level, Trade


def test_format_fill_rows_highlights_sell_level_on_touch():
    levels = [Level(1, 15.0, 5.0), Level(2, 20.0, 5.0)]
    fills = compute_sell_fills(levels, [Trade(15.0, 5.0, side="sell")])
    rows = format_fill_rows(levels, fills, live_price=20.04)
    assert rows[0].endswith("fill=100.0%")
    assert rows[1].endswith("<- live")
    assert "status=open" in rows[-1]
    assert not any("<- live" in row for row in format_fill_rows(levels, fills))


def test_parse_prices_skips_malformed_pairs():
    assert parse_prices(["Bitcoin=60000", "eth", "doge=abc"]) == {"bitcoin": 60000.0}
