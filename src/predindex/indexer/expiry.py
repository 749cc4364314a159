"""Expiry sweeper - cancel unresolved markets whose end date has passed."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import TYPE_CHECKING

import structlog

from predindex.errors import StoreError
from predindex.ingestion.base import Canceller
from predindex.storage.db import store_errors
from predindex.storage.markets import list_unresolved_markets

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

_END_OF_DAY = time(23, 59, 59, tzinfo=timezone.utc)


def parse_end_time(value: str | None) -> datetime | None:
    """
    Parse a market end date. A bare YYYY-MM-DD means 23:59:59 UTC that day;
    otherwise an ISO 8601 / RFC 3339 timestamp with a time part (naive -> UTC).
    Other date-only forms (e.g. compact 20200101) and anything unparseable -> None.
    """
    s = (value or "").strip()
    if not s:
        return None
    try:
        day = datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        pass
    else:
        return datetime.combine(day, _END_OF_DAY)
    # fromisoformat also takes date-only forms, which would mean midnight
    if "T" not in s.upper() and " " not in s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class SweepResult:
    market_id: int
    address: str
    ok: bool
    digest: str | None = None
    error: str | None = None


class ExpirySweeper:
    """Every interval, issue the cancellation action for each expired unresolved market."""

    def __init__(
        self,
        conn: DuckDBPyConnection,
        canceller: Canceller,
        *,
        interval_sec: float = 30.0,
        cancel_timeout_sec: float | None = 60.0,
    ):
        self.conn = conn
        self.canceller = canceller
        self.interval_sec = interval_sec
        self.cancel_timeout_sec = cancel_timeout_sec
        # market_id -> digest of a submitted cancellation not yet reflected in the store
        self.cancelled: dict[int, str] = {}

    async def _cancel(self, market_id: int, address: str) -> SweepResult:
        try:
            digest = await asyncio.wait_for(
                self.canceller.cancel_market(address), timeout=self.cancel_timeout_sec
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            log.error("market_cancel_failed", market_id=market_id, address=address, error=error)
            return SweepResult(market_id, address, ok=False, error=error)
        log.info("market_cancelled", market_id=market_id, address=address, digest=digest)
        return SweepResult(market_id, address, ok=True, digest=digest)

    async def sweep_once(self, now: datetime | None = None) -> list[SweepResult]:
        """One pass. Markets with no or unparseable end date are never treated as expired."""
        now = now or datetime.now(timezone.utc)
        try:
            with store_errors("list_unresolved_markets"):
                markets = list_unresolved_markets(self.conn)
        except StoreError as e:
            log.error("expiry_list_failed", error=str(e))
            return []
        # Markets that reached resolved=true (or were deleted) drop out
        unresolved = {m.market_id for m in markets}
        self.cancelled = {mid: d for mid, d in self.cancelled.items() if mid in unresolved}
        results: list[SweepResult] = []
        for market in markets:
            end = parse_end_time(market.end_date)
            if end is None or not end < now:
                continue
            if not market.address.strip():
                log.debug("expired_market_without_address", market_id=market.market_id)
                continue
            if market.market_id in self.cancelled:
                log.debug("market_cancel_pending", market_id=market.market_id, digest=self.cancelled[market.market_id])
                continue
            log.info("market_expired", market_id=market.market_id, name=market.name, end_date=market.end_date)
            result = await self._cancel(market.market_id, market.address)
            if result.ok:
                self.cancelled[market.market_id] = result.digest
            results.append(result)
        return results

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Sweep immediately, then every interval_sec until stop_event is set."""
        stop = stop_event or asyncio.Event()
        log.info("expiry_sweeper_started", interval_sec=self.interval_sec)
        while not stop.is_set():
            await self.sweep_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval_sec)
            except asyncio.TimeoutError:
                pass
        log.info("expiry_sweeper_stopped")
