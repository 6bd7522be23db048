from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Side:
    best_price: float
    total_volume: float = 0.0
    total_amount: float = 0.0


@dataclass
class OrderBookSnapshot:
    # bids.best_price <= asks.best_price is expected, never enforced
    bids: Side
    asks: Side


@dataclass
class Order:
    id: int
    price: float
    amount: float                     # > 0 bid (buy ETH), < 0 ask (sell ETH)
    placed_at_reference_price: float  # best price on the order's side when placed
    placed_at_tick: int

    @property
    def is_bid(self) -> bool:
        return self.amount > 0

    @property
    def side(self) -> str:
        return "BID" if self.is_bid else "ASK"
