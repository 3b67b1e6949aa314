"""Verbose help content for the ladderfill CLI package."""

from __future__ import annotations

from textwrap import dedent

VERBOSE_GLOBAL_OVERVIEW = dedent(
    """\
    Command reference

    Use ``--help`` for a compact summary of commands.
    Use ``--help-verbose`` either globally for the full catalog or after a command
    to drill into that command's flags and typical output.

    Data lives in the SQLite file named by SQLITE_PATH (default: ladderfill.db).
    Live prices are never fetched; pass them with --price coin=value or a JSON file.
    """
)


VERBOSE_COMMAND_HELP: dict[str, str] = {
    "ladder:build": dedent(
        """\
        ladder:build
          Purpose:
            Preview a buy ladder without saving it.
          Key flags:
            --top FLOAT      Top-of-cycle price the drawdowns are measured from.
            --budget FLOAT   USD to spread across the ladder.
            --depth INTEGER  70 (6 levels), 75 (3 levels) or 90 (8 levels).
            --growth FLOAT   Weight ratio between successive levels (default 1.25).
          Sample output:
            L1  -20%  price=80.00000000  planned=$90.65
        """
    ),
    "ladder:sell": dedent(
        """\
        ladder:sell
          Purpose:
            Preview a sell ladder above a baseline price without saving it.
          Key flags:
            --baseline FLOAT  Price the rises are measured from (usually avg cost).
            --tokens FLOAT    Tokens to distribute.
            --step FLOAT      Percent rise per level (default 50).
            --levels INTEGER  Number of levels, 1..60 (default 5).
            --pct FLOAT       Percent of the remaining tokens sold at each level.
        """
    ),
    "planner:buy": dedent(
        """\
        planner:buy
          Purpose:
            Save an active buy planner for a coin and persist its levels. The
            previous active buy planner for the coin is deactivated.
        """
    ),
    "planner:sell": dedent(
        """\
        planner:sell
          Purpose:
            Save an active sell planner and its levels. Without --baseline the
            on-plan average cost of the coin's active buy planner is used.
        """
    ),
    "trades:add": dedent(
        """\
        trades:add
          Purpose:
            Record one executed trade, tagged to the coin's active planner for
            that side unless --planner is given.
        """
    ),
    "trades:import": dedent(
        """\
        trades:import
          Purpose:
            Import trades from CSV with a trade_time,side,price,quantity,fee header.
          Usage tips:
            - Unparsable rows are skipped and counted in the summary line.
        """
    ),
    "fills:buy": dedent(
        """\
        fills:buy
          Purpose:
            Reconcile a buy planner's trades against its ladder.
          Key flags:
            --tolerance FLOAT  Override the eligibility band (0 = strict).
            --live             Use LIVE_BUY_TOLERANCE instead of BUY_FILL_TOLERANCE.
            --price FLOAT      Mark rows the live price touches with "<- live".
          Sample output:
            L1  price=50.00000000  planned=$500.00  filled=$500.00  fill=100.0%
            total planned=$1,000.00 filled=$900.00 off_plan=$0.00 avg_cost=40.00000000
        """
    ),
    "fills:sell": dedent(
        """\
        fills:sell
          Purpose:
            Reconcile a sell planner's trades against its ladder (token units).
        """
    ),
    "alerts:check": dedent(
        """\
        alerts:check
          Purpose:
            Run one alert cycle: evaluate every active planner against live prices,
            diff against the previous cycle and notify Discord on new keys.
          Key flags:
            --price TEXT       coin=value, repeatable.
            --price-file PATH  JSON object of coin -> price.
            --dry-run          Never send; still records state.
            --force            Send on the first cycle as well.
        """
    ),
    "alerts:watch": dedent(
        """\
        alerts:watch
          Purpose:
            Re-run alert cycles every --interval seconds, re-reading --price-file
            each time, and expose Prometheus metrics on PROM_PORT.
        """
    ),
}
