"""Pari-mutuel implied probabilities and volume from per-option stake totals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

# Chain base units per display unit (MIST per SUI).
BASE_UNITS_PER_COIN = 1_000_000_000


@dataclass(frozen=True)
class PriceQuote:
    odds: list[float]
    volume: float


def uniform_odds(n: int) -> list[float]:
    """Equal-probability prior over n options."""
    if n <= 0:
        return []
    return [1.0 / n] * n


def _stake(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        amount = int(value)
    except (TypeError, ValueError):
        return 0
    return amount if amount >= 0 else 0


def parse_stakes(values: Iterable[Any]) -> list[int]:
    """String-encoded u64 stakes -> ints. Malformed or negative entries become 0."""
    return [_stake(v) for v in values]


def compute_prices(stakes: list[int]) -> PriceQuote:
    """
    odds[i] = stakes[i] / sum(stakes), or uniform 1/N when nothing is staked.
    volume = sum(stakes) / 10^9. Python ints do not overflow on u64 sums.
    """
    if not stakes:
        raise ValueError("stakes must contain at least one option")
    total = sum(stakes)
    volume = total / BASE_UNITS_PER_COIN
    if total == 0:
        return PriceQuote(odds=uniform_odds(len(stakes)), volume=volume)
    return PriceQuote(odds=[s / total for s in stakes], volume=volume)
