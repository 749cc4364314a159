"""FastAPI backend - market import/list/delete, history ranges, manual cancel."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from predindex.api.schemas import (
    CancelResponse,
    CreateMarketRequest,
    ErrorResponse,
    HealthResponse,
    HistoryPointItem,
    HistoryResponse,
    MarketItem,
    MarketsListResponse,
)
from predindex.config import get_settings
from predindex.errors import CancellationError
from predindex.history import DEFAULT_RANGE, query_history, resolve_range
from predindex.ingestion.sui.cancel import SignerServiceCanceller
from predindex.storage.db import get_connection, init_schema
from predindex.storage.markets import delete_market, get_market, insert_market, list_markets

log = structlog.get_logger(__name__)

# Set by run_api() so lifespan can start the indexer loops in the same process.
_run_with_indexer = False
_config_profile: str | None = None
_indexer = None


def _get_conn(write: bool = False):
    settings = get_settings(_config_profile)
    # With the indexer in-process, DuckDB requires the same config for all connections to one file.
    read_only = not (write or _run_with_indexer)
    return get_connection(settings.db_path, read_only=read_only)


def _trigger_indexer() -> None:
    if _indexer is not None:
        _indexer.trigger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _indexer
    settings = get_settings(_config_profile)
    conn = get_connection(settings.db_path, read_only=False)
    try:
        init_schema(conn)
    finally:
        conn.close()

    indexer_task = None
    indexer_stop = None
    if _run_with_indexer:
        from predindex.indexer.service import IndexerService

        # ConfigurationError here is fatal: the app does not start
        _indexer = IndexerService.from_settings(settings)
        indexer_stop = asyncio.Event()
        indexer_task = asyncio.create_task(_indexer.run(stop_event=indexer_stop))

    yield

    if indexer_task is not None and indexer_stop is not None and _indexer is not None:
        indexer_stop.set()
        await indexer_task
        await _indexer.close()
        _indexer = None


app = FastAPI(title="PredIndex API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", indexer_running=_indexer is not None)


@app.get("/markets", response_model=MarketsListResponse)
def markets_list(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> MarketsListResponse:
    """List markets with their cached summary."""
    conn = _get_conn()
    try:
        all_markets = list_markets(conn)
        page = all_markets[offset : offset + limit]
        return MarketsListResponse(
            markets=[MarketItem(**m.model_dump()) for m in page],
            total=len(all_markets),
        )
    finally:
        conn.close()


@app.post("/markets", response_model=MarketItem, status_code=201)
async def market_create(body: CreateMarketRequest) -> MarketItem:
    """Import a deployed market and wake the indexer so it is backfilled right away."""
    conn = _get_conn(write=True)
    try:
        market = insert_market(
            conn,
            name=body.name,
            address=body.address,
            options=body.options,
            description=body.description,
            end_date=body.end_date,
        )
    finally:
        conn.close()
    log.info("market_imported", market_id=market.market_id, address=market.address)
    _trigger_indexer()
    return MarketItem(**market.model_dump())


@app.delete(
    "/markets/{market_id}",
    status_code=204,
    responses={404: {"description": "Market not found", "model": ErrorResponse}},
)
def market_delete(market_id: int):
    """Admin delete: removes the market and its history."""
    conn = _get_conn(write=True)
    try:
        if not delete_market(conn, market_id):
            return _error_json("not_found", f"Market not found: {market_id}")
    finally:
        conn.close()
    log.info("market_deleted", market_id=market_id)
    return Response(status_code=204)


@app.get(
    "/markets/{market_id}/history",
    response_model=HistoryResponse,
    responses={404: {"description": "Market not found", "model": ErrorResponse}},
)
def market_history(
    market_id: int,
    range_: str = Query(DEFAULT_RANGE, alias="range", description="5m, 1h, 6h, 1d, 1w or 1M"),
):
    """History points in the lookback window, oldest first. Never empty for an existing market."""
    conn = _get_conn()
    try:
        market = get_market(conn, market_id)
        if market is None:
            return _error_json("not_found", f"Market not found: {market_id}")
        range_name, _ = resolve_range(range_)
        points = query_history(conn, market, range_name)
        return HistoryResponse(
            market_id=market_id,
            range=range_name,
            points=[HistoryPointItem(timestamp=p.timestamp, odds=p.odds, volume=p.volume) for p in points],
        )
    finally:
        conn.close()


@app.post(
    "/markets/{market_id}/cancel",
    response_model=CancelResponse,
    responses={
        404: {"description": "Market not found", "model": ErrorResponse},
        502: {"description": "Signer failed", "model": ErrorResponse},
        503: {"description": "No signer configured", "model": ErrorResponse},
    },
)
async def market_cancel(market_id: int):
    """Manually cancel a market on chain through the signer service."""
    settings = get_settings(_config_profile)
    if not settings.signer_url:
        return _error_json("no_signer", "expiry.signer_url is not configured", status_code=503)
    conn = _get_conn()
    try:
        market = get_market(conn, market_id)
    finally:
        conn.close()
    if market is None or not market.address:
        return _error_json("not_found", f"Market not found: {market_id}")
    async with SignerServiceCanceller(settings.signer_url) as canceller:
        try:
            digest = await canceller.cancel_market(market.address)
        except CancellationError as e:
            log.error("market_cancel_failed", market_id=market_id, error=str(e))
            return _error_json("cancel_failed", str(e), status_code=502)
    log.info("market_cancelled", market_id=market_id, digest=digest)
    return CancelResponse(market_id=market_id, digest=digest)


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    with_indexer: bool = False,
    profile: str | None = None,
) -> None:
    global _run_with_indexer, _config_profile
    _run_with_indexer = with_indexer
    _config_profile = profile
    import uvicorn
    uvicorn.run("predindex.api.main:app", host=host, port=port, reload=False)
