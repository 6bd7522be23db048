# mmbot/sizing.py
from __future__ import annotations

import math
from dataclasses import dataclass

from .trends import ieee_div


@dataclass
class SizingRules:
    # tanh steepness; asks use -steepness, bids +steepness
    steepness: float = 10.0
    # never size below 0.1% of the allotted part
    floor: float = 0.001


def demand_factor(trend: float, k: float, floor: float = 0.001) -> float:
    """
    Saturating sigmoid in [floor, 1):
      k > 0 -> grows with the trend (bids)
      k < 0 -> shrinks with the trend (asks)
    """
    return max(floor, (math.tanh(k * trend) + 1) / 2)


def _check_parts(parts: int) -> None:
    if parts <= 0:
        raise ValueError(f"parts must be positive, got {parts}")


def size_ask(
    trend: float,
    available_eth: float,
    reserved_eth: float,
    parts: int,
    rules: SizingRules | None = None,
) -> float:
    """Signed (negative) ETH amount for one of `parts` replacement asks."""
    rules = rules or SizingRules()
    _check_parts(parts)
    factor = demand_factor(trend, -rules.steepness, rules.floor)
    ratio = (available_eth - reserved_eth) / parts
    return -1 * ratio * factor


def size_bid(
    trend: float,
    available_usd: float,
    reserved_usd: float,
    best_bid: float,
    parts: int,
    rules: SizingRules | None = None,
) -> float:
    """ETH amount for one of `parts` replacement bids, funded from USD at best_bid."""
    rules = rules or SizingRules()
    _check_parts(parts)
    factor = demand_factor(trend, rules.steepness, rules.floor)
    eth_equivalent = ieee_div(available_usd - reserved_usd, best_bid)
    return (eth_equivalent / parts) * factor
