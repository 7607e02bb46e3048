"""Tests for tradelogic.data — CoinDCX client with mocked HTTP responses, and mock data."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from tradelogic.config import Config
from tradelogic.data import coindcx_client
from tradelogic.data.coindcx_client import CoinDCXClient, DataFetchError
from tradelogic.data.mock import generate_mock_data
from tradelogic.strategy.models import Candle, parse_time


def _make_config() -> Config:
    return Config(
        trade_pair="B-BTC_USDT",
        timeframe="60",
        initial_balance=1000.0,
        poll_interval_seconds=5,
        data_base_url="https://public.example.test/",
        log_level="INFO",
        health_port=8080,
    )


# ── Mock CoinDCX responses ──────────────────────────────────────────────

MOCK_CANDLES_RESPONSE = {
    "s": "ok",
    "data": [
        # deliberately newest-first
        {
            "time": 1736470800000,
            "open": 94200.0,
            "high": 94500.5,
            "low": 94100.0,
            "close": 94400.0,
            "volume": 12.5,
        },
        {
            "time": 1736467200000,
            "open": "94000.0",
            "high": "94300.0",
            "low": "93900.0",
            "close": "94200.0",
            "volume": "20",
        },
    ],
}

MOCK_TRADES_RESPONSE = [
    {"p": 94412.3, "q": 0.01, "s": "B-BTC_USDT", "T": 1736470900000, "m": False},
]

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def _patch_get(monkeypatch, responder):
    """Route every ``httpx.AsyncClient.get`` through *responder(url, params)*."""
    calls = []

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls.append({"url": url, "params": params, "headers": headers})
        return responder(url, params)

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    return calls


def _json(status, body, url):
    return httpx.Response(status, json=body, request=httpx.Request("GET", url))


# ── Candles ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_parse_candles(monkeypatch):
    """Candles are parsed, ordered oldest-first and timestamped in ISO UTC."""
    calls = _patch_get(monkeypatch, lambda url, p: _json(200, MOCK_CANDLES_RESPONSE, url))
    client = CoinDCXClient(_make_config())

    candles = await client.fetch_candles("B-BTC_USDT", "60", now=NOW)

    assert len(candles) == 2
    first = candles[0]
    assert isinstance(first, Candle)
    assert first.time == "2025-01-10T00:00:00.000Z"
    assert first.open == pytest.approx(94000.0)
    assert first.high == pytest.approx(94300.0)
    assert first.low == pytest.approx(93900.0)
    assert first.close == pytest.approx(94200.0)
    assert first.volume == pytest.approx(20.0)
    assert first.ema is None
    assert candles[1].time == "2025-01-10T01:00:00.000Z"
    assert parse_time(candles[1].time) > parse_time(candles[0].time)

    assert calls[0]["url"] == "https://public.example.test/market_data/candlesticks"


@pytest.mark.asyncio
async def test_candle_request_window(monkeypatch):
    """The request covers 200 candles of the requested resolution."""
    calls = _patch_get(monkeypatch, lambda url, p: _json(200, {"s": "ok", "data": []}, url))
    client = CoinDCXClient(_make_config())

    await client.fetch_candles("B-ETH_USDT", "5", now=NOW)

    params = calls[0]["params"]
    to_ts = int(NOW.timestamp())
    assert params["pair"] == "B-ETH_USDT"
    assert params["resolution"] == "5"
    assert params["pcode"] == "f"
    assert params["to"] == str(to_ts)
    assert params["from"] == str(to_ts - 200 * 300)


@pytest.mark.asyncio
async def test_bad_status_raises(monkeypatch):
    _patch_get(monkeypatch, lambda url, p: _json(200, {"s": "error", "data": None}, url))
    client = CoinDCXClient(_make_config())

    with pytest.raises(DataFetchError, match="B-BTC_USDT"):
        await client.fetch_candles("B-BTC_USDT", now=NOW)


# ── Ticker ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_ticker(monkeypatch):
    calls = _patch_get(monkeypatch, lambda url, p: _json(200, MOCK_TRADES_RESPONSE, url))
    client = CoinDCXClient(_make_config())

    price = await client.fetch_ticker("B-BTC_USDT")

    assert price == pytest.approx(94412.3)
    assert calls[0]["url"].endswith("/market_data/trade_history")
    assert calls[0]["params"] == {"pair": "B-BTC_USDT", "limit": "1"}


@pytest.mark.asyncio
async def test_fetch_ticker_empty(monkeypatch):
    _patch_get(monkeypatch, lambda url, p: _json(200, [], url))
    client = CoinDCXClient(_make_config())
    assert await client.fetch_ticker("B-BTC_USDT") is None


# ── Retry ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_retries_transient_errors(monkeypatch):
    monkeypatch.setattr(coindcx_client, "_RETRY_BASE_DELAY", 0.0)
    statuses = iter([503, 429, 200])
    calls = _patch_get(
        monkeypatch,
        lambda url, p: _json(next(statuses), MOCK_TRADES_RESPONSE, url),
    )
    client = CoinDCXClient(_make_config())

    assert await client.fetch_ticker("B-BTC_USDT") == pytest.approx(94412.3)
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(monkeypatch):
    monkeypatch.setattr(coindcx_client, "_RETRY_BASE_DELAY", 0.0)
    calls = _patch_get(monkeypatch, lambda url, p: _json(502, {}, url))
    client = CoinDCXClient(_make_config())

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_ticker("B-BTC_USDT")
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_no_wait_after_final_attempt(monkeypatch):
    delays = []

    async def _fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(coindcx_client.asyncio, "sleep", _fake_sleep)
    _patch_get(monkeypatch, lambda url, p: _json(503, {}, url))
    client = CoinDCXClient(_make_config())

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_ticker("B-BTC_USDT")
    assert delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_client_error_not_retried(monkeypatch):
    monkeypatch.setattr(coindcx_client, "_RETRY_BASE_DELAY", 0.0)
    calls = _patch_get(monkeypatch, lambda url, p: _json(404, {}, url))
    client = CoinDCXClient(_make_config())

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_candles("B-BTC_USDT", now=NOW)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_transport_error_retried(monkeypatch):
    monkeypatch.setattr(coindcx_client, "_RETRY_BASE_DELAY", 0.0)
    attempts = []

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        attempts.append(url)
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    client = CoinDCXClient(_make_config())

    with pytest.raises(httpx.ConnectError):
        await client.fetch_ticker("B-BTC_USDT")
    assert len(attempts) == 3


# ── Mock data ───────────────────────────────────────────────────────────


class TestMockData:
    def test_count_and_spacing(self):
        end = datetime(2025, 1, 10, tzinfo=timezone.utc)
        candles = generate_mock_data(48, seed=1, end=end)
        assert len(candles) == 48
        assert parse_time(candles[0].time) == end - timedelta(hours=48)
        assert parse_time(candles[-1].time) == end - timedelta(hours=1)
        deltas = {
            parse_time(b.time) - parse_time(a.time)
            for a, b in zip(candles, candles[1:])
        }
        assert deltas == {timedelta(hours=1)}

    def test_candles_are_well_formed(self):
        for c in generate_mock_data(200, seed=5):
            assert c.low <= min(c.open, c.close)
            assert c.high >= max(c.open, c.close)
            assert c.volume > 0

    def test_walk_is_continuous(self):
        candles = generate_mock_data(50, start_price=100.0, seed=2)
        assert candles[0].open == 100.0
        for a, b in zip(candles, candles[1:]):
            assert b.open == a.close

    def test_seed_is_reproducible(self):
        end = datetime(2025, 1, 10, tzinfo=timezone.utc)
        assert generate_mock_data(30, seed=9, end=end) == generate_mock_data(30, seed=9, end=end)
