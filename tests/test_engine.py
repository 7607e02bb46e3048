"""Tests for the live trading engine orchestration.

Verifies the polling flow: fetch candles → update bot → publish snapshots.
Uses a fake data client to avoid real CoinDCX calls.
"""

from datetime import datetime, timezone

import httpx
import pytest

from tradelogic.api import routers
from tradelogic.api.routers import configure_routers
from tradelogic.backtest.engine import TradingBot
from tradelogic.config import Config
from tradelogic.data.coindcx_client import DataFetchError
from tradelogic.engine import TradingEngine
from tradelogic.strategy.models import Candle


NOW = datetime(2025, 1, 2, 2, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_config(**overrides) -> Config:
    """Build a Config with sensible test defaults."""
    defaults = dict(
        trade_pair="B-BTC_USDT",
        timeframe="60",
        initial_balance=1000.0,
        poll_interval_seconds=5,
        data_base_url="https://public.example.test",
        log_level="WARNING",
        health_port=8080,
    )
    defaults.update(overrides)
    return Config(**defaults)


def _time(i: int) -> str:
    return f"2025-01-{1 + i // 24:02d}T{i % 24:02d}:00:00Z"


def _long_setup() -> list[Candle]:
    """25 quiet candles above a 98.5 demand zone, then a Bullish Pin Bar at 100."""
    candles = [
        Candle(_time(i), 98.8, 99.2, 98.5, 98.9, 1000) for i in range(25)
    ]
    candles.append(Candle(_time(25), 99.9, 100.05, 99.6, 100.0, 1000))
    return candles


# ── Fake data client ─────────────────────────────────────────────────────


class FakeClient:
    """Duck-typed CoinDCXClient replacement for engine tests."""

    def __init__(self, candles=None, ticker=None) -> None:
        self.candles = candles if candles is not None else _long_setup()
        self.ticker = ticker
        self.candle_error: Exception | None = None
        self.ticker_error: Exception | None = None
        self.requests: list[tuple[str, str]] = []
        self.on_fetch = None

    async def fetch_candles(self, pair, resolution="60", now=None):
        self.requests.append((pair, resolution))
        if self.on_fetch is not None:
            await self.on_fetch()
        if self.candle_error is not None:
            raise self.candle_error
        return list(self.candles)

    async def fetch_ticker(self, pair):
        if self.ticker_error is not None:
            raise self.ticker_error
        return self.ticker


def _make_engine(client=None, **config_overrides):
    config = _make_config(**config_overrides)
    bot = TradingBot(config.initial_balance, started_at="2024-12-31T23:00:00Z")
    return TradingEngine(config, client or FakeClient(), bot=bot)


@pytest.fixture(autouse=True)
def _reset_routers():
    configure_routers(reset_state=True)
    yield
    configure_routers(reset_state=True)


# ── Single cycle ─────────────────────────────────────────────────────────


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_cycle_opens_trade_and_publishes(self):
        engine = _make_engine(FakeClient(ticker=101.0))
        result = await engine.run_once(utc_now=NOW)

        assert result["action"] == "updated"
        assert result["pair"] == "B-BTC_USDT"
        assert result["candles"] == 26
        assert result["open_trade"] == "trade-1"
        # marked to the ticker: 5 units × (101 - 100)
        assert result["balance"] == pytest.approx(1005.0)
        assert result["signal"] == "BUY"

        status = routers._bot_status
        assert status["balance"] == pytest.approx(1005.0)
        assert status["last_price"] == 101.0
        assert status["cycle_count"] == 1
        assert status["last_cycle_at"] == NOW.isoformat()
        assert status["open_trade"]["id"] == "trade-1"
        assert routers._trades[0]["side"] == "LONG"
        assert routers._strategy_insight["pattern"] == "Bullish Pin Bar"

        # mark-to-market never leaks into the bot's booked balance
        assert engine.bot.state.balance == 1000.0

    @pytest.mark.asyncio
    async def test_repeated_cycles_do_not_duplicate_trades(self):
        engine = _make_engine()
        await engine.run_once(utc_now=NOW)
        await engine.run_once(utc_now=NOW)
        assert len(engine.last_result.trades) == 1

    @pytest.mark.asyncio
    async def test_candle_fetch_failure_skips_cycle(self):
        client = FakeClient()
        client.candle_error = DataFetchError("bad payload")
        engine = _make_engine(client)

        result = await engine.run_once(utc_now=NOW)
        assert result["action"] == "skipped"
        assert "bad payload" in result["reason"]
        assert engine.last_result is None
        assert "candle fetch failed" in routers._bot_status["last_error"]

    @pytest.mark.asyncio
    async def test_http_error_skips_cycle(self):
        client = FakeClient()
        client.candle_error = httpx.ConnectError("offline")
        result = await _make_engine(client).run_once(utc_now=NOW)
        assert result["action"] == "skipped"

    @pytest.mark.asyncio
    async def test_no_candles_skips_cycle(self):
        result = await _make_engine(FakeClient(candles=[])).run_once(utc_now=NOW)
        assert result == {"action": "skipped", "reason": "no candles"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectError("offline"), KeyError("p"), ValueError("bad price")],
    )
    async def test_ticker_failure_is_tolerated(self, error):
        client = FakeClient()
        client.ticker_error = error
        result = await _make_engine(client).run_once(utc_now=NOW)

        assert result["action"] == "updated"
        assert result["balance"] == pytest.approx(1000.0)
        assert routers._bot_status["last_price"] is None

    @pytest.mark.asyncio
    async def test_market_switch_during_fetch_discards_data(self):
        client = FakeClient()
        engine = _make_engine(client)

        async def _switch():
            client.on_fetch = None
            await engine.switch_market("B-ETH_USDT", "5")

        client.on_fetch = _switch
        result = await engine.run_once(utc_now=NOW)

        assert result == {"action": "skipped", "reason": "market changed during fetch"}
        assert engine.bot.state.watermark is None


# ── Control ──────────────────────────────────────────────────────────────


class TestControl:

    @pytest.mark.asyncio
    async def test_switch_market_resets_and_refetches(self):
        client = FakeClient()
        engine = _make_engine(client)
        await engine.run_once(utc_now=NOW)

        await engine.switch_market("B-ETH_USDT", "5")
        assert engine.pair == "B-ETH_USDT"
        assert engine.timeframe == "5"
        assert engine.bot.state.open_trade is None
        assert routers._trades == []
        assert routers._bot_status["pair"] == "B-ETH_USDT"

        await engine.run_once(utc_now=NOW)
        assert client.requests[-1] == ("B-ETH_USDT", "5")

    @pytest.mark.asyncio
    async def test_reset_restores_initial_balance(self):
        engine = _make_engine(initial_balance=2000.0)
        await engine.run_once(utc_now=NOW)
        await engine.reset()

        assert engine.last_result.trades == []
        assert engine.last_result.final_balance == 2000.0
        assert engine.last_analysis is None
        assert routers._bot_status["balance"] == 2000.0


# ── Polling loop ─────────────────────────────────────────────────────────


class TestRunLoop:

    @pytest.mark.asyncio
    async def test_stops_after_max_cycles(self):
        engine = _make_engine()
        results = await engine.run(poll_interval=0, max_cycles=3)

        assert [r["action"] for r in results] == ["updated"] * 3
        assert engine.running is False
        assert routers._bot_status["running"] is False
        assert routers._bot_status["cycle_count"] == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_kill_loop(self):
        client = FakeClient()
        client.candle_error = RuntimeError("boom")
        engine = _make_engine(client)

        results = await engine.run(poll_interval=0, max_cycles=2)
        assert [r["action"] for r in results] == ["error", "error"]
        assert routers._bot_status["last_error"] == "boom"

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self):
        client = FakeClient()
        engine = _make_engine(client)

        async def _stop():
            engine.stop()

        client.on_fetch = _stop
        results = await engine.run(poll_interval=1)
        assert len(results) == 1
