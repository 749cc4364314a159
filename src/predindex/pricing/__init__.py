"""Pari-mutuel pricing and history change detection."""

from predindex.pricing.calculator import PriceQuote, compute_prices, parse_stakes, uniform_odds
from predindex.pricing.change import PRICE_EPSILON, should_persist

__all__ = [
    "PriceQuote",
    "compute_prices",
    "parse_stakes",
    "uniform_odds",
    "PRICE_EPSILON",
    "should_persist",
]
