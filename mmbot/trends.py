# mmbot/trends.py
from __future__ import annotations

import math
from typing import List, Optional

from .errors import PreconditionError
from .models import OrderBookSnapshot


def ieee_div(num: float, den: float) -> float:
    """
    Float division that follows IEEE 754 instead of raising:
      x/0 -> +-inf, 0/0 -> nan
    A degenerate book (empty or symmetric sides) therefore yields a non-finite
    signal rather than an exception. Screening it is up to the caller.
    """
    if den != 0:
        return num / den
    if num == 0 or math.isnan(num):
        return math.nan
    return math.copysign(math.inf, num) * math.copysign(1.0, den)


class TrendEstimator:
    """
    Smoothed price-direction signal from consecutive order book snapshots.

    Keeps the last `history_length` average-price changes (newest first) and
    weights them linearly, newest highest. The weighted change is then scaled
    by the depth (amount) and volume imbalance of the latest book and by the
    relative move of the best bid against the best ask.
    """

    def __init__(self, *, history_length: int = 3, multiplier: float = 20.0):
        self.history_length = int(history_length)
        self.multiplier = float(multiplier)

        self.trend: float = 0.0
        self.history: List[float] = []
        self.last_snapshot: Optional[OrderBookSnapshot] = None

    def set_state(self, snapshot: OrderBookSnapshot) -> None:
        self.last_snapshot = snapshot

    def process_new_state(self, snapshot: OrderBookSnapshot) -> float:
        old = self.last_snapshot
        if old is None:
            raise PreconditionError("process_new_state called before set_state")

        bids, asks = snapshot.bids, snapshot.asks

        amount_diff = ieee_div(bids.total_amount - asks.total_amount, bids.total_amount + asks.total_amount)
        volume_diff = ieee_div(bids.total_volume - asks.total_volume, bids.total_volume + asks.total_volume)

        new_sum = bids.best_price + asks.best_price
        old_sum = old.bids.best_price + old.asks.best_price
        avg_change = ieee_div(new_sum - old_sum, new_sum + old_sum)

        bid_change = ieee_div(
            ieee_div(bids.best_price, old.bids.best_price),
            ieee_div(asks.best_price, old.asks.best_price),
        )

        self.history.insert(0, avg_change)
        del self.history[self.history_length:]

        h = self.historic_change()
        self.trend = self.multiplier * (
            (h * amount_diff)
            + (h * volume_diff)
            + (h * bid_change)
            + h
        ) / 4

        self.set_state(snapshot)
        return self.trend

    def historic_change(self) -> float:
        """Weighted mean of stored changes; newest weighs len(history), oldest 1."""
        n = len(self.history)
        base = sum(n - i for i in range(n))
        if base == 0:
            return 0.0
        total = sum(change * (n - i) for i, change in enumerate(self.history))
        value = total / base
        return 0.0 if math.isnan(value) else value

    def get_trend(self) -> float:
        return self.trend
