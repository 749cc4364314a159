"""Market persistence: import, lookup, cached summary updates, admin delete."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

from predindex.models import Market

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = [
    "market_id",
    "address",
    "name",
    "description",
    "options",
    "end_date",
    "resolved",
    "winner",
    "total_volume",
    "odds",
    "created_at",
]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM markets"


def _json_list(value: Any) -> list[Any] | None:
    if value is None:
        return None
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, json.JSONDecodeError):
        return None
    return parsed if isinstance(parsed, list) else None


def _row_to_market(row: tuple[Any, ...]) -> Market:
    d = dict(zip(_COLUMNS, row))
    d["options"] = [str(o) for o in (_json_list(d["options"]) or [])]
    odds = _json_list(d["odds"])
    d["odds"] = [float(o) for o in odds] if odds is not None else None
    d["total_volume"] = float(d["total_volume"] or 0.0)
    d["resolved"] = bool(d["resolved"])
    return Market(**d)


def insert_market(
    conn: DuckDBPyConnection,
    name: str,
    address: str = "",
    options: list[str] | None = None,
    description: str | None = None,
    end_date: str | None = None,
) -> Market:
    """Insert a new market (import by address) and return it with its assigned id."""
    now_ms = int(time.time() * 1000)
    row = conn.execute(
        f"""
        INSERT INTO markets (address, name, description, options, end_date, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        RETURNING {', '.join(_COLUMNS)}
        """,
        [address.strip(), name, description, json.dumps(options or []), end_date, now_ms],
    ).fetchone()
    return _row_to_market(row)


def get_market(conn: DuckDBPyConnection, market_id: int) -> Market | None:
    row = conn.execute(f"{_SELECT} WHERE market_id = ?", [market_id]).fetchone()
    return _row_to_market(row) if row else None


def list_markets(conn: DuckDBPyConnection) -> list[Market]:
    """All markets, oldest first."""
    rows = conn.execute(f"{_SELECT} ORDER BY market_id").fetchall()
    return [_row_to_market(r) for r in rows]


def list_unresolved_markets(conn: DuckDBPyConnection) -> list[Market]:
    rows = conn.execute(f"{_SELECT} WHERE resolved = false ORDER BY market_id").fetchall()
    return [_row_to_market(r) for r in rows]


def update_market_summary(
    conn: DuckDBPyConnection,
    market_id: int,
    *,
    total_volume: float,
    odds: list[float],
    resolved: bool,
    winner: int | None,
) -> None:
    """Overwrite the cached summary fields with the latest poll (last writer wins)."""
    conn.execute(
        """
        UPDATE markets SET
            total_volume = ?,
            odds = ?,
            resolved = ?,
            winner = ?
        WHERE market_id = ?
        """,
        [total_volume, json.dumps(odds), resolved, winner, market_id],
    )


def delete_market(conn: DuckDBPyConnection, market_id: int) -> bool:
    """Delete a market and its history. Return False if it did not exist."""
    if get_market(conn, market_id) is None:
        return False
    conn.execute("DELETE FROM market_history WHERE market_id = ?", [market_id])
    conn.execute("DELETE FROM markets WHERE market_id = ?", [market_id])
    return True
