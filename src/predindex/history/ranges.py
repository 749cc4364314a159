"""Lookback windows ("5m" .. "1M") over stored history points."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from predindex.models import HistoryPoint, Market
from predindex.pricing import uniform_odds
from predindex.storage.history import find_history_since

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS

RANGE_WINDOWS_MS: dict[str, int] = {
    "5m": 5 * _MINUTE_MS,
    "1h": _HOUR_MS,
    "6h": 6 * _HOUR_MS,
    "1d": _DAY_MS,
    "1w": 7 * _DAY_MS,
    "1M": 30 * _DAY_MS,
}
DEFAULT_RANGE = "1M"


def resolve_range(range_name: str | None) -> tuple[str, int]:
    """Return (range name, window ms). Unknown or missing names fall back to DEFAULT_RANGE."""
    if range_name in RANGE_WINDOWS_MS:
        return range_name, RANGE_WINDOWS_MS[range_name]
    return DEFAULT_RANGE, RANGE_WINDOWS_MS[DEFAULT_RANGE]


def query_history(
    conn: DuckDBPyConnection,
    market: Market,
    range_name: str | None = None,
    now_ms: int | None = None,
) -> list[HistoryPoint]:
    """
    Points inside the window, ascending. An empty window yields two flat points
    (uniform odds, zero volume) at window start and now, so charts never get an empty series.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    _, window_ms = resolve_range(range_name)
    start_ms = now_ms - window_ms
    points = find_history_since(conn, market.market_id, start_ms)
    if points:
        return points
    odds = uniform_odds(market.options_count or 2)
    return [
        HistoryPoint(market_id=market.market_id, timestamp=start_ms, odds=odds, volume=0.0),
        HistoryPoint(market_id=market.market_id, timestamp=now_ms, odds=list(odds), volume=0.0),
    ]
