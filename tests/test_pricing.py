"""Price calculator and change detector."""

import pytest

from predindex.models import HistoryPoint
from predindex.pricing import PRICE_EPSILON, compute_prices, parse_stakes, should_persist, uniform_odds


def test_odds_are_stake_shares():
    quote = compute_prices([100, 300])
    assert quote.odds == [0.25, 0.75]
    assert quote.volume == 400 / 1e9


@pytest.mark.parametrize("stakes", [[1, 2, 3], [7, 0, 0, 11], [10**9, 3 * 10**9, 5], [1]])
def test_odds_sum_to_one(stakes):
    quote = compute_prices(stakes)
    total = sum(stakes)
    assert abs(sum(quote.odds) - 1.0) < 1e-9
    for s, p in zip(stakes, quote.odds):
        assert p == s / total


def test_empty_pool_is_uniform():
    assert compute_prices([0, 0, 0]).odds == [1 / 3] * 3
    assert compute_prices([0, 0]).odds == [0.5, 0.5]
    assert compute_prices([0]).odds == [1.0]
    assert compute_prices([0, 0]).volume == 0.0


def test_u64_max_stakes_do_not_overflow():
    u64_max = 2**64 - 1
    quote = compute_prices([u64_max, u64_max])
    assert quote.odds == [0.5, 0.5]
    assert quote.volume == pytest.approx(2 * u64_max / 1e9)


def test_compute_prices_rejects_empty():
    with pytest.raises(ValueError):
        compute_prices([])


def test_parse_stakes_degrades_to_zero():
    assert parse_stakes(["100", "abc", None, "-5", 7, "18446744073709551615"]) == [
        100, 0, 0, 0, 7, 18446744073709551615,
    ]
    assert uniform_odds(0) == []


def _point(odds, volume):
    return HistoryPoint(market_id=1, timestamp=0, odds=odds, volume=volume)


def test_no_previous_point_always_persists():
    assert should_persist(None, [0.5, 0.5], 0.0)
    assert should_persist(None, [], 0.0)


def test_unchanged_poll_is_not_persisted():
    quote = compute_prices([1, 1, 1])
    prev = _point(quote.odds, quote.volume)
    assert not should_persist(prev, compute_prices([1, 1, 1]).odds, quote.volume)
    # Same thirds computed from a scaled pool differ only by float noise
    scaled = compute_prices([5, 5, 5])
    assert not should_persist(prev, scaled.odds, quote.volume)


def test_single_odds_move_is_persisted():
    prev = _point([0.5, 0.5], 1.0)
    assert should_persist(prev, [0.5 + 2 * PRICE_EPSILON, 0.5 - 2 * PRICE_EPSILON], 1.0)
    assert not should_persist(prev, [0.5 + PRICE_EPSILON / 2, 0.5 - PRICE_EPSILON / 2], 1.0)


def test_volume_move_is_persisted():
    prev = _point([0.5, 0.5], 1.0)
    assert should_persist(prev, [0.5, 0.5], 1.0 + 1e-6)


def test_length_mismatch_is_a_change():
    prev = _point([0.5, 0.5], 1.0)
    assert should_persist(prev, [1 / 3, 1 / 3, 1 / 3], 1.0)
