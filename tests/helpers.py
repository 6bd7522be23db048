"""Order book builders and a scripted snapshot source shared by the suites."""

from mmbot.models import OrderBookSnapshot, Side


def book(bid: float, ask: float, bid_total: float = 10.0, ask_total: float = 10.0) -> OrderBookSnapshot:
    return OrderBookSnapshot(
        bids=Side(best_price=bid, total_volume=bid_total, total_amount=bid_total),
        asks=Side(best_price=ask, total_volume=ask_total, total_amount=ask_total),
    )


class ScriptedSource:
    """Returns `current` on every call; an Exception instance in `current` is raised instead."""

    def __init__(self, current):
        self.current = current
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if isinstance(self.current, Exception):
            raise self.current
        return self.current
