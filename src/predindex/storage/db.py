"""DuckDB connection and schema init."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

import duckdb

from predindex.errors import StoreError

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS market_seq START 1;
CREATE SEQUENCE IF NOT EXISTS history_seq START 1;

-- Tracked markets with cached summary (volume, odds, resolution)
CREATE TABLE IF NOT EXISTS markets (
    market_id       BIGINT PRIMARY KEY DEFAULT nextval('market_seq'),
    address         VARCHAR NOT NULL DEFAULT '',
    name            VARCHAR NOT NULL,
    description     VARCHAR,
    options         JSON,
    end_date        VARCHAR,
    resolved        BOOLEAN NOT NULL DEFAULT FALSE,
    winner          INTEGER,
    total_volume    DOUBLE NOT NULL DEFAULT 0,
    odds            JSON,
    created_at      BIGINT NOT NULL
);

-- Price history (append-only time series per market)
CREATE TABLE IF NOT EXISTS market_history (
    id              BIGINT PRIMARY KEY DEFAULT nextval('history_seq'),
    market_id       BIGINT NOT NULL,
    timestamp       BIGINT NOT NULL,
    odds            JSON NOT NULL,
    volume          DOUBLE NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_market_ts ON market_history (market_id, timestamp);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use read_only=True when another process may be writing (e.g. predindex run)
    so the API can read while the indexer holds the write lock."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables, sequences and indexes if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise DuckDB failures inside the block as StoreError."""
    try:
        yield
    except duckdb.Error as e:
        raise StoreError(f"{operation}: {e}") from e
