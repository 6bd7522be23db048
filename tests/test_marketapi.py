"""Order book reduction and transport error mapping."""

import http.client
import io
import json
import math
import urllib.error

import pytest

from mmbot.config import MarketApiCfg
from mmbot.errors import TransportError
from mmbot.marketapi import MarketApi, parse_order_book


ROWS = [
    [2001.5, 3, 1.5],
    [2001.0, 1, 0.5],
    [2002.0, 2, -0.75],
    [2003.5, 4, -2.0],
]


def test_splits_rows_by_sign() -> None:
    snap = parse_order_book(ROWS)

    assert snap.bids.best_price == 2001.5
    assert snap.bids.total_amount == pytest.approx(2.0)
    assert snap.bids.total_volume == 4

    assert snap.asks.best_price == 2002.0
    assert snap.asks.total_amount == pytest.approx(2.75)
    assert snap.asks.total_volume == 6


def test_best_price_does_not_depend_on_row_order() -> None:
    snap = parse_order_book(list(reversed(ROWS)))
    assert snap.bids.best_price == 2001.5
    assert snap.asks.best_price == 2002.0


def test_empty_book_keeps_sentinels() -> None:
    snap = parse_order_book([])
    assert snap.bids.best_price == 0
    assert snap.asks.best_price == math.inf


@pytest.mark.parametrize("payload", [{"error": "rate limit"}, "nope", None])
def test_unexpected_payload(payload) -> None:
    with pytest.raises(TransportError):
        parse_order_book(payload)


@pytest.mark.parametrize("row", [[1.0, 2.0], ["x", 1, 1], 5])
def test_malformed_row(row) -> None:
    with pytest.raises(TransportError):
        parse_order_book([row])


def test_url() -> None:
    api = MarketApi(MarketApiCfg(base_url="https://example.test/book/", symbol="tETHUSD", precision="P1"))
    assert api.url == "https://example.test/book/tETHUSD/P1"


class _Resp(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.mark.asyncio
async def test_get_order_book(monkeypatch) -> None:
    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["timeout"] = timeout
        return _Resp(json.dumps(ROWS).encode("utf-8"))

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    api = MarketApi(MarketApiCfg(timeout_sec=3))

    snap = await api.get_order_book()

    assert seen["url"] == "https://api.deversifi.com/bfx/v2/book/tETHUSD/P0"
    assert seen["timeout"] == 3
    assert snap.bids.best_price == 2001.5


def test_non_json_is_transport_error(monkeypatch) -> None:
    monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout: _Resp(b"<html>"))
    with pytest.raises(TransportError):
        MarketApi(MarketApiCfg()).fetch_order_book()


def test_http_error_is_transport_error(monkeypatch) -> None:
    def fail(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 503, "unavailable", {}, io.BytesIO(b"down"))

    monkeypatch.setattr("urllib.request.urlopen", fail)
    with pytest.raises(TransportError, match="503"):
        MarketApi(MarketApiCfg()).fetch_order_book()


def test_unreachable_is_transport_error(monkeypatch) -> None:
    def fail(req, timeout):
        raise urllib.error.URLError("no route")

    monkeypatch.setattr("urllib.request.urlopen", fail)
    with pytest.raises(TransportError, match="unreachable"):
        MarketApi(MarketApiCfg()).fetch_order_book()


def test_dropped_connection_is_transport_error(monkeypatch) -> None:
    def fail(req, timeout):
        raise http.client.RemoteDisconnected("closed")

    monkeypatch.setattr("urllib.request.urlopen", fail)
    with pytest.raises(TransportError, match="connection failed"):
        MarketApi(MarketApiCfg()).fetch_order_book()


class _TruncatedResp(_Resp):
    def read(self, *args):
        raise http.client.IncompleteRead(b"[[2001.5, 3", 40)


def test_truncated_body_is_transport_error(monkeypatch) -> None:
    monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout: _TruncatedResp())
    with pytest.raises(TransportError):
        MarketApi(MarketApiCfg()).fetch_order_book()


def test_connection_reset_is_transport_error(monkeypatch) -> None:
    def fail(req, timeout):
        raise ConnectionResetError(104, "Connection reset by peer")

    monkeypatch.setattr("urllib.request.urlopen", fail)
    with pytest.raises(TransportError):
        MarketApi(MarketApiCfg()).fetch_order_book()
