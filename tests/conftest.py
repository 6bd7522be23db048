"""Fixtures: a hand-driven scheduler and a controller wired to a scripted source."""

import inspect
import random

import pytest

from mmbot.controller import OrderController
from mmbot.models import OrderBookSnapshot, Side

from helpers import ScriptedSource


class FakeTask:
    def __init__(self, interval_sec, fn):
        self.interval_sec = interval_sec
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    def __init__(self):
        self.tasks = {}

    def every(self, interval_sec, fn, *, name):
        task = FakeTask(interval_sec, fn)
        self.tasks[name] = task
        return task

    async def fire(self, name):
        result = self.tasks[name].fn()
        if inspect.isawaitable(result):
            await result


@pytest.fixture
def source() -> ScriptedSource:
    return ScriptedSource(OrderBookSnapshot(bids=Side(best_price=2), asks=Side(best_price=3)))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def controller(source, scheduler) -> OrderController:
    return OrderController(
        source,
        {"ETH": 10, "USD": 2000},
        scheduler=scheduler,
        rng=random.Random(7),
    )
