# mmbot/controller.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from .models import Order, OrderBookSnapshot
from .scheduler import AsyncioScheduler, Scheduler, ScheduledTask
from .sizing import SizingRules, size_ask, size_bid
from .trends import TrendEstimator, ieee_div

SnapshotSource = Callable[[], Awaitable[OrderBookSnapshot]]

REQUIRED_SYMBOLS = ("ETH", "USD")


@dataclass
class ControllerCfg:
    refresh_ms: int = 5000
    report_ms: int = 30000
    reserved_pct: float = 0.05

    # live orders kept per side
    depth: int = 5
    # starting ladder: +-5% around each best
    ladder_spread: float = 0.05
    # orders older than this many ticks are cancelled
    max_order_age_ticks: int = 5
    # flat trend: replenish within 0.1% of the best
    flat_gap: float = 0.001
    # trending: replenish within [0, jitter) price units of the projection
    jitter: float = 5.0

    sizing: SizingRules = field(default_factory=SizingRules)


class OrderController:
    """
    Synthetic market maker for one pair (ETH/USD).

    Every refresh tick: fetch book -> update trend -> fill -> cancel -> replenish.
    Fills are simulated against the best prices of the fetched snapshot; no
    order ever reaches an exchange.

    Balance is only touched by fills. Open orders do not escrow anything, so
    the sum of live asks can exceed the ETH actually held (and bids the USD).
    That inventory risk is accepted as-is.
    """

    def __init__(
        self,
        fetch_snapshot: SnapshotSource,
        balance: Dict[str, float],
        *,
        cfg: Optional[ControllerCfg] = None,
        scheduler: Optional[Scheduler] = None,
        trends: Optional[TrendEstimator] = None,
        rng: Optional[random.Random] = None,
        log: Optional[logging.Logger] = None,
    ):
        missing = [s for s in REQUIRED_SYMBOLS if s not in balance]
        if missing:
            raise ValueError(f"starting balance is missing {', '.join(missing)}")

        self.fetch_snapshot = fetch_snapshot
        self.cfg = cfg or ControllerCfg()
        self.log = log or logging.getLogger("mmbot")
        self.scheduler = scheduler or AsyncioScheduler(log=self.log)
        self.trends = trends or TrendEstimator()
        self.rng = rng or random.Random()

        self.balance: Dict[str, float] = {s: float(v) for s, v in balance.items()}
        self.reserved: Dict[str, float] = {s: v * self.cfg.reserved_pct for s, v in self.balance.items()}

        # insertion ordered: fill/cancel scans are deterministic
        self.orders: Dict[int, Order] = {}
        self._next_order_id = 0
        self.tick = 0

        self.best_bid: float = 0.0
        self.best_ask: float = 0.0

        self._refresh_task: Optional[ScheduledTask] = None
        self._report_task: Optional[ScheduledTask] = None
        self._stopped = False

    # ---------- Lifecycle ----------

    async def start(self) -> None:
        self.log.info("[START] fetching initial order book")
        snapshot = await self.fetch_snapshot()
        self.trends.set_state(snapshot)
        self._set_bests(snapshot)

        self.place_starting_orders()
        self.tick += 1

        self.log.info(f"[START] entering main loop refresh={self.cfg.refresh_ms}ms report={self.cfg.report_ms}ms")
        self._refresh_task = self.scheduler.every(self.cfg.refresh_ms / 1000.0, self.refresh, name="refresh")
        self._report_task = self.scheduler.every(self.cfg.report_ms / 1000.0, self.report_balance, name="report")

    def stop(self) -> None:
        """Stop managing orders. Open orders are left untouched."""
        if self._stopped:
            return
        self._stopped = True
        self.log.info("[STOP] stopping the bot")

        for task in (self._refresh_task, self._report_task):
            if task is not None:
                task.cancel()

        self.report_balance()

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def refresh(self) -> None:
        """
        One control cycle. The fetch is the only await; if it raises, the
        error propagates and no state has changed. A fetch that completes
        after stop() is discarded.
        """
        if self._stopped:
            return

        snapshot = await self.fetch_snapshot()
        if self._stopped:
            return

        self.trends.process_new_state(snapshot)
        self._set_bests(snapshot)

        self.fill_orders()
        self.cancel_orders()
        self.place_new_orders()

        self.tick += 1

    def report_balance(self) -> None:
        for symbol in self.balance:
            self.log.info(f"[BALANCE] {symbol} @ {self.get_balance(symbol)}")

    # ---------- Queries ----------

    @property
    def trend(self) -> float:
        return self.trends.get_trend()

    def get_placed_orders(self) -> List[Order]:
        return list(self.orders.values())

    def get_balance(self, symbol: str) -> float:
        return self.balance[symbol]

    # ---------- Order primitives ----------

    def place_order(self, price: float, amount: float) -> Order:
        order = Order(
            id=self._next_order_id,
            price=float(price),
            amount=float(amount),
            placed_at_reference_price=self.best_bid if amount > 0 else self.best_ask,
            placed_at_tick=self.tick,
        )
        self._next_order_id += 1
        self.orders[order.id] = order

        self.log.info(f"[PLACE] {order.side} @ {order.price:.8f} {order.amount:.8f}")
        return order

    def cancel_order(self, order_id: int) -> bool:
        order = self.orders.pop(order_id, None)
        if order is None:
            self.log.debug(f"[CANCELLED] unknown order id={order_id}")
            return False

        self.log.info(f"[CANCELLED] {order.side} @ {order.price:.8f} {order.amount:.8f}")
        return True

    def fill_order(self, price: float, amount: float) -> None:
        """Settle a fill at `price`: ETH += amount, USD -= amount * price."""
        d_usd = -1 * amount * price
        self.balance["ETH"] += amount
        self.balance["USD"] += d_usd

        side = "BID" if amount > 0 else "ASK"
        eth = f"ETH {'+' if amount > 0 else ''}{amount:.4f}"
        usd = f"USD {'+' if amount < 0 else ''}{d_usd:.4f}"
        self.log.info(f"[FILLED] {side} @ {price:.8f} {amount:.8f} ({eth} {usd})")

    # ---------- Tick phases ----------

    def place_starting_orders(self) -> None:
        """5 random bids and 5 random asks within +-5% of the bests. Reserve is not applied here."""
        bid_threshold = self.best_bid * self.cfg.ladder_spread
        ask_threshold = self.best_ask * self.cfg.ladder_spread

        estimated_eth_in_usd = ieee_div(self.get_balance("USD"), self.best_bid)

        expandable_eth = self.get_balance("ETH") / self.cfg.depth
        expandable_usd = estimated_eth_in_usd / self.cfg.depth

        for _ in range(self.cfg.depth):
            bid_price = self.best_bid + ((self.rng.random() * bid_threshold * 2) - bid_threshold)
            ask_price = self.best_ask + ((self.rng.random() * ask_threshold * 2) - ask_threshold)

            bid_amount = self.rng.random() * expandable_usd
            ask_amount = self.rng.random() * expandable_eth * -1

            self.place_order(bid_price, bid_amount)
            self.place_order(ask_price, ask_amount)

    def fill_orders(self) -> None:
        """Bids above the best bid and asks below the best ask fill in full at their own price."""
        to_fill = [
            order for order in self.orders.values()
            if (order.is_bid and order.price > self.best_bid)
            or (not order.is_bid and order.price < self.best_ask)
        ]
        for order in to_fill:
            self.fill_order(order.price, order.amount)
            del self.orders[order.id]

    def cancel_orders(self) -> None:
        expected_bid, expected_ask = self._expected_bests()

        to_cancel: List[int] = []
        for order in self.orders.values():
            # stuck
            if order.placed_at_tick < self.tick - self.cfg.max_order_age_ticks:
                to_cancel.append(order.id)
                continue
            # out of projected range, or the market moved away from it
            if order.is_bid:
                if order.price > expected_bid or order.placed_at_reference_price < self.best_bid:
                    to_cancel.append(order.id)
            elif order.price < expected_ask or order.placed_at_reference_price > self.best_ask:
                to_cancel.append(order.id)

        for order_id in to_cancel:
            self.cancel_order(order_id)

    def place_new_orders(self) -> None:
        bids_live = sum(1 for o in self.orders.values() if o.is_bid)
        asks_live = len(self.orders) - bids_live
        bids_to_place = max(0, self.cfg.depth - bids_live)
        asks_to_place = max(0, self.cfg.depth - asks_live)

        trend = self.trend
        self.log.debug(
            f"[TREND] {trend:.5f} bid={self.best_bid:.1f} expected={self.best_bid * (1 + trend):.1f}"
        )

        if trend == 0:
            # no expected movement: cluster around the current bests
            ask_gap = self.best_ask * self.cfg.flat_gap
            bid_gap = self.best_bid * self.cfg.flat_gap
            ask_prices = [self.best_ask + (self.rng.random() * ask_gap) for _ in range(asks_to_place)]
            bid_prices = [self.best_bid - (self.rng.random() * bid_gap) for _ in range(bids_to_place)]
        else:
            expected_bid, expected_ask = self._expected_bests()
            if expected_ask < expected_bid:
                mid = (expected_bid + expected_ask) / 2
                expected_bid = expected_ask = mid
            ask_prices = [expected_ask + (self.rng.random() * self.cfg.jitter) for _ in range(asks_to_place)]
            bid_prices = [expected_bid - (self.rng.random() * self.cfg.jitter) for _ in range(bids_to_place)]

        if asks_to_place:
            for price in ask_prices:
                self.place_order(price, self.amount_to_ask(asks_to_place))
        if bids_to_place:
            for price in bid_prices:
                self.place_order(price, self.amount_to_bid(bids_to_place))

    # ---------- Sizing ----------

    def amount_to_ask(self, parts: int) -> float:
        return size_ask(
            self.trend,
            available_eth=self.get_balance("ETH"),
            reserved_eth=self.reserved["ETH"],
            parts=parts,
            rules=self.cfg.sizing,
        )

    def amount_to_bid(self, parts: int) -> float:
        return size_bid(
            self.trend,
            available_usd=self.get_balance("USD"),
            reserved_usd=self.reserved["USD"],
            best_bid=self.best_bid,
            parts=parts,
            rules=self.cfg.sizing,
        )

    # ---------- Internal ----------

    def _set_bests(self, snapshot: OrderBookSnapshot) -> None:
        self.best_bid = snapshot.bids.best_price
        self.best_ask = snapshot.asks.best_price

    def _expected_bests(self) -> tuple[float, float]:
        trend = self.trend
        return self.best_bid * (1 + trend), self.best_ask * (1 + trend)
