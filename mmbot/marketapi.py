# mmbot/marketapi.py
from __future__ import annotations

import asyncio
import http.client
import json
import math
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict

from .config import MarketApiCfg
from .errors import TransportError
from .models import OrderBookSnapshot, Side


def parse_order_book(rows: Any) -> OrderBookSnapshot:
    """
    Reduce raw book rows into one Side per direction.

    Rows are [price, count, amount]; amount > 0 is a bid, otherwise an ask.
    The feed usually lists the best levels first, but that is not documented,
    so the best price is taken as max(bids) / min(asks).
    """
    if not isinstance(rows, list):
        raise TransportError(f"Unexpected order book payload: {type(rows).__name__}")

    bids = Side(best_price=0.0)
    asks = Side(best_price=math.inf)

    for row in rows:
        try:
            price, count, amount = (float(x) for x in row)
        except (TypeError, ValueError) as e:
            raise TransportError(f"Malformed order book row: {row!r}") from e

        if amount > 0:
            side = bids
            if side.best_price < price:
                side.best_price = price
        else:
            side = asks
            if side.best_price > price:
                side.best_price = price

        side.total_amount += abs(amount)
        side.total_volume += count

    return OrderBookSnapshot(bids=bids, asks=asks)


class MarketApi:
    """Public order book fetcher for a single symbol/precision pair."""

    def __init__(self, cfg: MarketApiCfg):
        self.cfg = cfg

    @property
    def url(self) -> str:
        symbol = urllib.parse.quote(self.cfg.symbol)
        precision = urllib.parse.quote(self.cfg.precision)
        return f"{self.cfg.base_url.rstrip('/')}/{symbol}/{precision}"

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.cfg.user_agent,
            "Accept": "application/json",
        }

    def get_json(self) -> Any:
        req = urllib.request.Request(url=self.url, headers=self._headers(), method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self.cfg.timeout_sec) as resp:
                body = resp.read().decode("utf-8", errors="replace")
                return json.loads(body)
        except urllib.error.HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace")
            raise TransportError(f"Order book HTTP {e.code}: {raw[:200]}") from e
        except urllib.error.URLError as e:
            raise TransportError(f"Order book unreachable: {e.reason}") from e
        except TimeoutError as e:
            raise TransportError("Order book request timed out") from e
        except json.JSONDecodeError as e:
            raise TransportError("Order book returned non-JSON response") from e
        except (http.client.HTTPException, OSError) as e:
            raise TransportError(f"Order book connection failed: {e!r}") from e

    def fetch_order_book(self) -> OrderBookSnapshot:
        return parse_order_book(self.get_json())

    async def get_order_book(self) -> OrderBookSnapshot:
        return await asyncio.to_thread(self.fetch_order_book)

