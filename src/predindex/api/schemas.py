"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    indexer_running: bool = False


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found, no_signer")


# --- Markets ---
class MarketItem(BaseModel):
    market_id: int
    address: str
    name: str
    description: str | None = None
    options: list[str]
    end_date: str | None = None
    resolved: bool
    winner: int | None = None
    total_volume: float
    odds: list[float] | None = None
    created_at: int | None = None


class MarketsListResponse(BaseModel):
    markets: list[MarketItem]
    total: int


class CreateMarketRequest(BaseModel):
    """Import an already deployed market by its on-chain object id."""

    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, description="On-chain market object id")
    options: list[str] = Field(default_factory=lambda: ["Yes", "No"], min_length=2)
    description: str | None = None
    end_date: str | None = Field(None, description="RFC 3339 timestamp or YYYY-MM-DD")


# --- History ---
class HistoryPointItem(BaseModel):
    timestamp: int = Field(..., description="ms epoch")
    odds: list[float]
    volume: float


class HistoryResponse(BaseModel):
    market_id: int
    range: str
    points: list[HistoryPointItem]


# --- Cancel ---
class CancelResponse(BaseModel):
    market_id: int
    digest: str
    status: str = "submitted"
