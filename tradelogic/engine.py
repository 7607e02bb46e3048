"""TradeLogic — live paper-trading engine (polling loop).

Each cycle fetches the latest candles and trade price, feeds them to the
``TradingBot`` and publishes the resulting snapshots to the API.  All
calls that mutate the bot (update, reset, market switch) run under one
``asyncio.Lock``: ``TradingBot.update`` is not reentrant, and a slow fetch
must never let two updates interleave.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from tradelogic.api.routers import (
    publish_snapshot,
    update_bot_status,
    update_strategy_insight,
)
from tradelogic.backtest.engine import TradingBot
from tradelogic.config import Config
from tradelogic.data.coindcx_client import CoinDCXClient, DataFetchError
from tradelogic.strategy.models import BacktestResult, StrategyResult
from tradelogic.strategy.signals import run_strategy

logger = logging.getLogger("tradelogic.engine")


class TradingEngine:
    """Runs one fetch-and-update cycle per call, or a polling loop.

    Args:
        config: Application configuration.
        client: A ``CoinDCXClient`` (or compatible duck-type / mock).
        bot: The bot to drive.  A fresh one is built from *config* if omitted.
    """

    def __init__(
        self,
        config: Config,
        client: CoinDCXClient,
        bot: Optional[TradingBot] = None,
    ) -> None:
        self._config = config
        self._client = client
        self._bot = bot or TradingBot(config.initial_balance)
        self._pair = config.trade_pair
        self._timeframe = config.timeframe
        self._lock = asyncio.Lock()
        self._running: bool = False
        self._cycle_count: int = 0
        self._last_result: Optional[BacktestResult] = None
        self._last_analysis: Optional[StrategyResult] = None

    @property
    def pair(self) -> str:
        """Pair currently tracked."""
        return self._pair

    @property
    def timeframe(self) -> str:
        """Candle resolution currently tracked."""
        return self._timeframe

    @property
    def bot(self) -> TradingBot:
        return self._bot

    @property
    def last_result(self) -> Optional[BacktestResult]:
        """Snapshot from the most recent successful cycle."""
        return self._last_result

    @property
    def last_analysis(self) -> Optional[StrategyResult]:
        return self._last_analysis

    @property
    def running(self) -> bool:
        return self._running

    # ── Control ──────────────────────────────────────────────────────────

    async def switch_market(self, pair: str, timeframe: str) -> None:
        """Track a new pair/timeframe.  All bot history is discarded."""
        async with self._lock:
            self._pair = pair
            self._timeframe = timeframe
            self._reset_locked()
        logger.info("Now tracking %s on timeframe %s", pair, timeframe)

    async def reset(self) -> None:
        """Discard all bot history for the current market."""
        async with self._lock:
            self._reset_locked()

    def _reset_locked(self) -> None:
        result = self._bot.reset(self._config.initial_balance)
        self._last_result = result
        self._last_analysis = None
        publish_snapshot(result)
        update_bot_status(pair=self._pair, timeframe=self._timeframe)

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(
        self,
        poll_interval: int | None = None,
        max_cycles: int = 0,
    ) -> list[dict]:
        """Run the polling loop until stopped.

        Args:
            poll_interval: Seconds between cycles.  Defaults to config.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            List of per-cycle result dicts.
        """
        if poll_interval is None:
            poll_interval = self._config.poll_interval_seconds

        self._running = True
        update_bot_status(running=True, pair=self._pair, timeframe=self._timeframe)
        results: list[dict] = []
        cycle = 0

        while self._running:
            cycle += 1
            try:
                result = await self.run_once()
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                result = {"action": "error", "reason": str(exc)}
                update_bot_status(last_error=str(exc))
            results.append(result)
            logger.debug("Cycle %d: %s", cycle, result.get("action", "unknown"))

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep: checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        update_bot_status(running=False)
        return results

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self, utc_now: Optional[datetime] = None) -> dict:
        """Execute one fetch-and-update cycle.

        Returns a dict describing the outcome:

        - ``{"action": "skipped", "reason": "..."}`` — nothing new was
          processed; the previous snapshot stands.
        - ``{"action": "updated", ...}``

        Args:
            utc_now: Current UTC datetime.  Defaults to ``datetime.now(UTC)``.
        """
        if utc_now is None:
            utc_now = datetime.now(timezone.utc)

        pair, timeframe = self._pair, self._timeframe

        try:
            candles = await self._client.fetch_candles(pair, timeframe, now=utc_now)
        except (httpx.HTTPError, DataFetchError) as exc:
            logger.error("Candle fetch for %s failed: %s", pair, exc)
            update_bot_status(last_error=f"candle fetch failed: {exc}")
            return {"action": "skipped", "reason": f"candle fetch failed: {exc}"}

        if not candles:
            logger.warning("No candles returned for %s/%s", pair, timeframe)
            return {"action": "skipped", "reason": "no candles"}

        try:
            ticker = await self._client.fetch_ticker(pair)
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("Ticker fetch for %s failed: %s", pair, exc)
            ticker = None

        async with self._lock:
            if (pair, timeframe) != (self._pair, self._timeframe):
                return {"action": "skipped", "reason": "market changed during fetch"}

            self._bot.update(candles)
            result = self._bot.get_stats(ticker)
            _, analysis = run_strategy(candles)

            self._cycle_count += 1
            self._last_result = result
            self._last_analysis = analysis

        evaluated_at = utc_now.isoformat()
        publish_snapshot(result, last_price=ticker)
        update_strategy_insight(analysis, evaluated_at)
        update_bot_status(
            pair=pair,
            timeframe=timeframe,
            cycle_count=self._cycle_count,
            last_cycle_at=evaluated_at,
            last_error=None,
        )

        open_trade = next((t for t in result.trades if t.status == "OPEN"), None)
        return {
            "action": "updated",
            "pair": pair,
            "timeframe": timeframe,
            "candles": len(candles),
            "signal": analysis.signal,
            "balance": result.final_balance,
            "open_trade": open_trade.id if open_trade else None,
        }
