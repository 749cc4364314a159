"""Reconciliation loop - poll chain state per market, derive odds, persist history and summary."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from predindex.errors import MalformedSnapshot, StoreError, TransientChainError
from predindex.indexer.backfill import backfill_history_if_needed
from predindex.indexer.trigger import TriggerChannel
from predindex.ingestion.base import ChainReader, call_with_timeout
from predindex.models import HistoryPoint, Market, ObjectSnapshot
from predindex.pricing import PriceQuote, compute_prices, should_persist
from predindex.storage.db import store_errors
from predindex.storage.history import append_history_point, find_latest_history
from predindex.storage.markets import list_markets, update_market_summary

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class MarketStatus(str, Enum):
    UPDATED = "updated"  # new history point written
    UNCHANGED = "unchanged"  # summary refreshed, no material change
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class MarketResult:
    """Outcome of processing one market in one iteration."""

    market_id: int
    status: MarketStatus
    reason: str | None = None
    history_written: bool = False
    backfilled: int = 0

    @property
    def ok(self) -> bool:
        return self.status in (MarketStatus.UPDATED, MarketStatus.UNCHANGED)


class ReconciliationLoop:
    """
    Every interval (or right after a trigger) walk all markets: backfill empty history,
    read the live object, price it, append a history point when it moved, refresh the summary.
    One market's failure never affects the others; the next tick is the retry.
    """

    def __init__(
        self,
        conn: DuckDBPyConnection,
        reader: ChainReader,
        event_filter: dict[str, Any],
        *,
        interval_sec: float = 2.0,
        chain_timeout_sec: float | None = 10.0,
        triggers: TriggerChannel | None = None,
    ):
        self.conn = conn
        self.reader = reader
        self.event_filter = event_filter
        self.interval_sec = interval_sec
        self.chain_timeout_sec = chain_timeout_sec
        self.triggers = triggers or TriggerChannel()
        self.iterations = 0

    async def _fetch_snapshot(self, address: str) -> ObjectSnapshot:
        return await call_with_timeout(
            self.reader.get_object(address), self.chain_timeout_sec, "get_object"
        )

    def _persist(self, market: Market, quote: PriceQuote, snapshot: ObjectSnapshot) -> bool:
        """Append a point if it moved, then always refresh the cached summary. Returns True if a point was written."""
        written = False
        with store_errors("persist_market"):
            latest = find_latest_history(self.conn, market.market_id)
            if should_persist(latest, quote.odds, quote.volume):
                now_ms = int(time.time() * 1000)
                # Keep per-market timestamps non-decreasing even if the clock stepped back
                ts = max(now_ms, latest.timestamp) if latest else now_ms
                append_history_point(
                    self.conn,
                    HistoryPoint(market_id=market.market_id, timestamp=ts, odds=quote.odds, volume=quote.volume),
                )
                written = True
            update_market_summary(
                self.conn,
                market.market_id,
                total_volume=quote.volume,
                odds=quote.odds,
                resolved=snapshot.resolved,
                winner=snapshot.winner,
            )
        return written

    async def process_market(self, market: Market) -> MarketResult:
        """Run one market through backfill, snapshot, pricing and persistence."""
        if not market.address.strip():
            return MarketResult(market.market_id, MarketStatus.SKIPPED, reason="no_address")
        backfilled = 0
        try:
            backfilled = await backfill_history_if_needed(
                self.conn, self.reader, market, self.event_filter, timeout=self.chain_timeout_sec
            )
            snapshot = await self._fetch_snapshot(market.address)
            if not snapshot.total_stakes:
                raise MalformedSnapshot("total_stakes absent or empty")
            quote = compute_prices(snapshot.total_stakes)
            written = self._persist(market, quote, snapshot)
        except MalformedSnapshot as e:
            return MarketResult(market.market_id, MarketStatus.SKIPPED, reason=str(e), backfilled=backfilled)
        except (TransientChainError, StoreError) as e:
            return MarketResult(market.market_id, MarketStatus.FAILED, reason=str(e), backfilled=backfilled)
        status = MarketStatus.UPDATED if written else MarketStatus.UNCHANGED
        return MarketResult(market.market_id, status, history_written=written, backfilled=backfilled)

    def _log_result(self, result: MarketResult) -> None:
        if result.status is MarketStatus.UPDATED:
            log.info("market_updated", market_id=result.market_id, backfilled=result.backfilled)
        elif result.status is MarketStatus.FAILED:
            log.warning("market_failed", market_id=result.market_id, error=result.reason)
        elif result.status is MarketStatus.SKIPPED and result.reason != "no_address":
            log.warning("market_skipped", market_id=result.market_id, reason=result.reason)

    async def run_once(self) -> list[MarketResult]:
        """One pass over every tracked market, sequentially."""
        self.iterations += 1
        try:
            with store_errors("list_markets"):
                markets = list_markets(self.conn)
        except StoreError as e:
            log.error("list_markets_failed", error=str(e))
            return []
        results: list[MarketResult] = []
        for market in markets:
            try:
                result = await self.process_market(market)
            except Exception as e:
                log.exception("market_unexpected_error", market_id=market.market_id)
                result = MarketResult(market.market_id, MarketStatus.FAILED, reason=f"unexpected: {e}")
            self._log_result(result)
            results.append(result)
        return results

    async def _wait_for_wakeup(self, stop: asyncio.Event, timeout: float) -> str:
        """Wait until the next tick, a trigger, or stop. Returns 'tick', 'trigger' or 'stop'."""
        trigger = asyncio.ensure_future(self.triggers.receive())
        stopper = asyncio.ensure_future(stop.wait())
        done, pending = await asyncio.wait(
            {trigger, stopper}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        if stopper in done:
            return "stop"
        if trigger in done:
            return "trigger"
        return "tick"

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Run until stop_event is set. First tick is immediate; triggers do not move the interval deadline."""
        stop = stop_event or asyncio.Event()
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        log.info("indexer_started", interval_sec=self.interval_sec)
        while not stop.is_set():
            wake = await self._wait_for_wakeup(stop, max(0.0, next_tick - loop.time()))
            if wake == "stop":
                break
            if wake == "tick":
                next_tick += self.interval_sec
                if next_tick < loop.time():
                    # Missed ticks are skipped, not replayed in a burst
                    next_tick = loop.time() + self.interval_sec
            else:
                coalesced = self.triggers.drain()
                log.info("indexer_triggered", coalesced=coalesced)
            await self.run_once()
        log.info("indexer_stopped", iterations=self.iterations)
