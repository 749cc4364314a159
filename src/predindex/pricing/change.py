"""Decide whether a freshly computed point differs enough from the last stored one."""

from __future__ import annotations

from predindex.models import HistoryPoint

# Absolute tolerance for odds and volume comparison.
PRICE_EPSILON = 1e-9


def should_persist(previous: HistoryPoint | None, odds: list[float], volume: float) -> bool:
    """True when there is no previous point or odds/volume moved by more than PRICE_EPSILON."""
    if previous is None:
        return True
    if len(previous.odds) != len(odds):
        return True
    if any(abs(a - b) > PRICE_EPSILON for a, b in zip(previous.odds, odds)):
        return True
    return abs(previous.volume - volume) > PRICE_EPSILON
