"""Canonical schema (Pydantic) - Market, HistoryPoint, chain snapshots and events."""

from predindex.models.chain import ChainEvent, EventKind, EventPage, ObjectSnapshot
from predindex.models.market import HistoryPoint, Market

__all__ = [
    "Market",
    "HistoryPoint",
    "ObjectSnapshot",
    "ChainEvent",
    "EventKind",
    "EventPage",
]
