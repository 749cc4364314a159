"""Rebuild a market's full price history from the module event log when none is stored."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog

from predindex.errors import MalformedSnapshot, TransientChainError
from predindex.ingestion.base import ChainReader, call_with_timeout
from predindex.ingestion.sui.decode import normalize_object_id
from predindex.models import ChainEvent, EventKind, HistoryPoint, Market
from predindex.pricing import compute_prices, uniform_odds
from predindex.storage.db import store_errors
from predindex.storage.history import append_history_points, count_history

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

DEFAULT_OPTIONS_COUNT = 2


def _event_time(event: ChainEvent, prev_ts: int | None, now_ms: int) -> int:
    """Chain timestamp, else the previous point's, else now. Never earlier than prev_ts."""
    if prev_ts is None:
        return event.timestamp_ms if event.timestamp_ms is not None else now_ms
    if event.timestamp_ms is None:
        return prev_ts
    return max(event.timestamp_ms, prev_ts)


def _point_from_event(market: Market, event: ChainEvent, ts: int) -> HistoryPoint | None:
    if event.kind is EventKind.MARKET_CREATED:
        n = event.options_count or market.options_count or DEFAULT_OPTIONS_COUNT
        return HistoryPoint(market_id=market.market_id, timestamp=ts, odds=uniform_odds(n), volume=0.0)
    if event.kind is EventKind.BET_PLACED:
        if not event.pool_amounts:
            log.warning("backfill_bet_without_pools", market_id=market.market_id, address=market.address)
            return None
        quote = compute_prices(event.pool_amounts)
        return HistoryPoint(market_id=market.market_id, timestamp=ts, odds=quote.odds, volume=quote.volume)
    return None


async def reconstruct_history(
    reader: ChainReader,
    market: Market,
    event_filter: dict[str, Any],
    *,
    timeout: float | None = None,
    now_ms: int | None = None,
) -> list[HistoryPoint]:
    """
    Page through the module's events oldest-first and turn every MarketCreated / BetPlaced
    addressed to this market into a HistoryPoint. Raises TransientChainError on a failed page.
    """
    target = normalize_object_id(market.address)
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    points: list[HistoryPoint] = []
    cursor: dict[str, Any] | None = None
    pages = 0
    while True:
        page = await call_with_timeout(
            reader.query_events(event_filter, cursor, ascending=True), timeout, "query_events"
        )
        pages += 1
        if not page.events:
            break
        for event in page.events:
            if event.market_id != target:
                continue
            prev_ts = points[-1].timestamp if points else None
            point = _point_from_event(market, event, _event_time(event, prev_ts, now_ms))
            if point is not None:
                points.append(point)
        if not page.has_more:
            break
        if page.next_cursor is None:
            log.warning("backfill_missing_cursor", market_id=market.market_id, pages=pages)
            break
        cursor = page.next_cursor
    log.debug("backfill_scanned", market_id=market.market_id, pages=pages, points=len(points))
    return points


async def backfill_history_if_needed(
    conn: DuckDBPyConnection,
    reader: ChainReader,
    market: Market,
    event_filter: dict[str, Any],
    *,
    timeout: float | None = None,
) -> int:
    """
    Reconstruct and store history when the market has none. Returns points written.
    A chain failure aborts this attempt without writing anything, so the next cycle retries.
    Store failures raise StoreError.
    """
    with store_errors("count_history"):
        if count_history(conn, market.market_id) > 0:
            return 0
    log.info("backfill_started", market_id=market.market_id, address=market.address)
    try:
        points = await reconstruct_history(reader, market, event_filter, timeout=timeout)
    except (TransientChainError, MalformedSnapshot) as e:
        log.warning("backfill_aborted", market_id=market.market_id, error=str(e))
        return 0
    with store_errors("append_history_points"):
        append_history_points(conn, points)
    log.info("backfill_done", market_id=market.market_id, points=len(points))
    return len(points)
