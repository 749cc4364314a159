"""Typed views of chain payloads, decoded once at the chain adapter."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    MARKET_CREATED = "MarketCreated"
    BET_PLACED = "BetPlaced"
    OTHER = "other"


class ObjectSnapshot(BaseModel):
    """Current state of a market object on chain."""

    object_id: str
    total_stakes: list[int] = Field(default_factory=list)
    resolved: bool = False
    winner: int | None = None


class ChainEvent(BaseModel):
    """One entry of the module event log."""

    kind: EventKind
    event_type: str = ""
    market_id: str | None = None  # normalized object id the event is addressed to
    options_count: int | None = None  # MarketCreated only
    pool_amounts: list[int] | None = None  # BetPlaced only
    timestamp_ms: int | None = None
    cursor: dict[str, Any] | None = None


class EventPage(BaseModel):
    """One page of an ascending event query."""

    events: list[ChainEvent] = Field(default_factory=list)
    next_cursor: dict[str, Any] | None = None
    has_more: bool = False
