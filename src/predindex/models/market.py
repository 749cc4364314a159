"""Market and HistoryPoint - local read models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Market(BaseModel):
    """Tracked prediction market with N mutually exclusive options."""

    market_id: int
    address: str = ""  # on-chain object id, empty if not deployed
    name: str
    description: str | None = None
    options: list[str] = Field(default_factory=list)
    end_date: str | None = None  # RFC 3339 or bare YYYY-MM-DD
    resolved: bool = False
    winner: int | None = None  # only meaningful when resolved
    total_volume: float = Field(0.0, ge=0)
    odds: list[float] | None = None  # parallel to options
    created_at: int | None = None  # ms epoch

    @property
    def options_count(self) -> int:
        return len(self.options)


class HistoryPoint(BaseModel):
    """Timestamped odds and volume for one market. Append-only."""

    market_id: int
    timestamp: int  # ms epoch
    odds: list[float]
    volume: float = Field(0.0, ge=0)
