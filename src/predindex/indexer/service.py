"""Indexer service - wires settings, store and chain adapters, runs both loops."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from predindex.config import Settings
from predindex.indexer.expiry import ExpirySweeper
from predindex.indexer.reconcile import ReconciliationLoop
from predindex.indexer.trigger import TriggerChannel
from predindex.ingestion.sui.cancel import SignerServiceCanceller
from predindex.ingestion.sui.client import SuiChainReader, module_filter
from predindex.storage.db import get_connection, init_schema

log = structlog.get_logger(__name__)


class IndexerService:
    """Owns the DuckDB connection and chain clients shared by the reconciliation loop and expiry sweeper."""

    def __init__(
        self,
        db_path: str | Path,
        rpc_url: str,
        package_id: str,
        *,
        module: str = "market",
        interval_sec: float = 2.0,
        request_timeout_sec: float = 10.0,
        event_page_size: int = 50,
        trigger_buffer: int = 100,
        expiry_interval_sec: float = 30.0,
        signer_url: str | None = None,
    ):
        self.db_path = Path(db_path)
        self.triggers = TriggerChannel(maxsize=trigger_buffer)
        self.reader = SuiChainReader(rpc_url, timeout=request_timeout_sec, page_size=event_page_size)
        self.canceller = SignerServiceCanceller(signer_url) if signer_url else None
        self._conn = get_connection(self.db_path)
        init_schema(self._conn)
        self.reconciler = ReconciliationLoop(
            self._conn,
            self.reader,
            module_filter(package_id, module),
            interval_sec=interval_sec,
            chain_timeout_sec=request_timeout_sec,
            triggers=self.triggers,
        )
        self.sweeper = (
            ExpirySweeper(self._conn, self.canceller, interval_sec=expiry_interval_sec)
            if self.canceller is not None
            else None
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> IndexerService:
        """Build from config. Raises ConfigurationError when the package id is missing."""
        return cls(
            db_path=settings.db_path,
            rpc_url=settings.rpc_url,
            package_id=settings.require_package_id(),
            module=settings.module,
            interval_sec=settings.indexer_interval_sec,
            request_timeout_sec=settings.request_timeout_sec,
            event_page_size=settings.event_page_size,
            trigger_buffer=settings.trigger_buffer,
            expiry_interval_sec=settings.expiry_interval_sec,
            signer_url=settings.signer_url,
        )

    def trigger(self) -> bool:
        """Ask the reconciliation loop for an immediate iteration."""
        return self.triggers.send()

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Run the reconciliation loop and (when a signer is configured) the expiry sweeper until stop_event.
        If either loop raises, the other is cancelled and the error propagates.
        """
        stop = stop_event or asyncio.Event()
        tasks = [asyncio.create_task(self.reconciler.run(stop), name="reconciliation")]
        if self.sweeper is not None:
            tasks.append(asyncio.create_task(self.sweeper.run(stop), name="expiry"))
        else:
            log.warning("expiry_sweeper_disabled", msg="Set expiry.signer_url (or SIGNER_URL) to enable.")
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            # Cancel whichever loop is still running
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                log.error("indexer_loop_crashed", loop=task.get_name(), error=str(task.exception()))
                raise task.exception()

    async def close(self) -> None:
        await self.reader.aclose()
        if self.canceller is not None:
            await self.canceller.aclose()
        if self._conn is not None:
            self._conn.close()
            self._conn = None
