"""Trend-skewed order sizing."""

import math

import pytest

from mmbot.sizing import SizingRules, demand_factor, size_ask, size_bid


def test_flat_trend_is_half_size() -> None:
    assert demand_factor(0, 10) == 0.5
    assert size_ask(0, available_eth=10, reserved_eth=0.5, parts=5) == pytest.approx(-0.95)
    assert size_bid(0, available_usd=2000, reserved_usd=100, best_bid=100, parts=5) == pytest.approx(1.9)


def test_rising_trend_shrinks_asks_and_grows_bids() -> None:
    ask_flat = size_ask(0, 10, 0.5, 5)
    ask_up = size_ask(0.05, 10, 0.5, 5)
    bid_flat = size_bid(0, 2000, 100, 100, 5)
    bid_up = size_bid(0.05, 2000, 100, 100, 5)

    assert abs(ask_up) < abs(ask_flat)
    assert bid_up > bid_flat


def test_factor_is_floored() -> None:
    assert demand_factor(5, -10) == 0.001
    assert size_ask(5, 10, 0, 1) == pytest.approx(-0.01)
    assert demand_factor(5, -10, floor=0.1) == 0.1


def test_custom_steepness() -> None:
    rules = SizingRules(steepness=1.0)
    expected = (math.tanh(0.5) + 1) / 2
    assert size_bid(0.5, 100, 0, 10, 1, rules) == pytest.approx(10 * expected)


def test_zero_parts_is_rejected() -> None:
    with pytest.raises(ValueError):
        size_ask(0, 10, 0, 0)
    with pytest.raises(ValueError):
        size_bid(0, 10, 0, 1, 0)


def test_empty_bid_side_is_not_an_exception() -> None:
    assert size_bid(0, 2000, 100, 0, 5) == math.inf
