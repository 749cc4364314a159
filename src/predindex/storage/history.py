"""Append-only price history per market."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from predindex.models import HistoryPoint

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_INSERT_SQL = "INSERT INTO market_history (market_id, timestamp, odds, volume) VALUES (?, ?, ?, ?)"


def _row(point: HistoryPoint) -> list[Any]:
    return [point.market_id, point.timestamp, json.dumps(point.odds), point.volume]


def _to_point(row: tuple[Any, ...]) -> HistoryPoint:
    market_id, ts, odds_json, volume = row
    try:
        odds = json.loads(odds_json) if isinstance(odds_json, str) else list(odds_json or [])
    except (TypeError, json.JSONDecodeError):
        odds = []
    return HistoryPoint(market_id=market_id, timestamp=ts, odds=[float(o) for o in odds], volume=volume)


def append_history_point(conn: DuckDBPyConnection, point: HistoryPoint) -> None:
    """Append one history row."""
    conn.execute(_INSERT_SQL, _row(point))


def append_history_points(conn: DuckDBPyConnection, points: list[HistoryPoint]) -> None:
    """Append many history rows in one transaction (all or nothing)."""
    if not points:
        return
    conn.begin()
    try:
        conn.executemany(_INSERT_SQL, [_row(p) for p in points])
    except Exception:
        conn.rollback()
        raise
    conn.commit()


def count_history(conn: DuckDBPyConnection, market_id: int) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM market_history WHERE market_id = ?", [market_id]
    ).fetchone()[0]


def find_latest_history(conn: DuckDBPyConnection, market_id: int) -> HistoryPoint | None:
    """Most recent point by timestamp (insertion order breaks ties)."""
    row = conn.execute(
        """
        SELECT market_id, timestamp, odds, volume FROM market_history
        WHERE market_id = ?
        ORDER BY timestamp DESC, id DESC
        LIMIT 1
        """,
        [market_id],
    ).fetchone()
    return _to_point(row) if row else None


def find_history_since(conn: DuckDBPyConnection, market_id: int, start_ts: int) -> list[HistoryPoint]:
    """Points with timestamp >= start_ts, ascending."""
    rows = conn.execute(
        """
        SELECT market_id, timestamp, odds, volume FROM market_history
        WHERE market_id = ? AND timestamp >= ?
        ORDER BY timestamp ASC, id ASC
        """,
        [market_id, start_ts],
    ).fetchall()
    return [_to_point(r) for r in rows]
