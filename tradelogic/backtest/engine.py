"""Paper-trading bot — replays candles through strategy and risk.

Each ``update()`` runs two passes over the supplied history:

1. The EMA is recomputed over the whole sequence, so a revised candle
   anywhere in the history is always reflected.
2. Trade decisions advance only over candles newer than the watermark.
   Already-evaluated candles are never re-decided, so feeding the same
   data twice opens no new trades.

Zones for a decision at candle ``i`` are detected with ``max_index=i``,
so only what was knowable at ``i`` influences the trade.

``update()`` is not reentrant: callers must serialise it (and ``reset()``).
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

from tradelogic.backtest.stats import calculate_win_rate
from tradelogic.risk.drawdown import DrawdownTracker
from tradelogic.risk.position_sizer import calculate_size
from tradelogic.risk.sl_tp import calculate_pnl, check_exit, pnl_percent
from tradelogic.strategy.indicators import attach_ema
from tradelogic.strategy.models import (
    BacktestResult,
    Candle,
    EquityPoint,
    ExitReason,
    Trade,
    parse_time,
)
from tradelogic.strategy.patterns import detect_pattern
from tradelogic.strategy.signals import evaluate_signal
from tradelogic.strategy.zones import find_zones

logger = logging.getLogger("tradelogic")

# Candles before this index are never evaluated (EMA/zone warm-up)
MIN_HISTORY = 20
DEFAULT_BALANCE = 1000.0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class BotState:
    """Mutable state owned by a single ``TradingBot``."""

    balance: float
    tracker: DrawdownTracker
    open_trade: Optional[Trade] = None
    closed_trades: list[Trade] = field(default_factory=list)  # newest first
    watermark: Optional[datetime] = None
    trade_seq: int = 0

    @property
    def initial_balance(self) -> float:
        return self.tracker.initial_equity

    @property
    def peak_balance(self) -> float:
        return self.tracker.peak_equity

    @property
    def max_drawdown_fraction(self) -> float:
        return self.tracker.max_drawdown_fraction

    @property
    def equity_curve(self) -> list[EquityPoint]:
        return self.tracker.equity_curve


def new_state(initial_balance: float, started_at: Optional[str] = None) -> BotState:
    """Build a fresh ``BotState`` seeded with *initial_balance*."""
    return BotState(
        balance=initial_balance,
        tracker=DrawdownTracker(initial_balance, started_at or _now_iso()),
    )


class TradingBot:
    """Single-position paper trader driven by incremental candle updates.

    Args:
        initial_balance: Starting virtual balance.
        ema_period: EMA period used for the bias.
        pivot_window: Half-window for zone pivots.
        zone_threshold: Relative clustering tolerance for zones.
        started_at: Time label of the first equity sample (defaults to now).
    """

    def __init__(
        self,
        initial_balance: float = DEFAULT_BALANCE,
        ema_period: int = 9,
        pivot_window: int = 10,
        zone_threshold: float = 0.005,
        started_at: Optional[str] = None,
    ) -> None:
        self._ema_period = ema_period
        self._pivot_window = pivot_window
        self._zone_threshold = zone_threshold
        self._state = new_state(initial_balance, started_at)
        self._processed: list[Candle] = []

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def state(self) -> BotState:
        """The bot's state.  Treat as read-only."""
        return self._state

    @property
    def processed_candles(self) -> list[Candle]:
        """Candles from the last update, with the EMA attached."""
        return list(self._processed)

    def update(self, candles: list[Candle]) -> BacktestResult:
        """Sync with the latest candle history and return a fresh snapshot.

        Empty input leaves the state untouched.
        """
        if not candles:
            return self.get_stats()

        # Pass 1: full recompute of the derived series
        processed = attach_ema(candles, self._ema_period)
        self._processed = processed

        # Pass 2: decisions only for candles past the watermark
        for index, candle in enumerate(processed):
            candle_time = parse_time(candle.time)
            if self._state.watermark is not None and candle_time <= self._state.watermark:
                continue
            self._evaluate_candle(index, candle, processed)
            self._state.watermark = candle_time

        return self.get_stats()

    def get_stats(self, current_price: Optional[float] = None) -> BacktestResult:
        """Snapshot of performance, optionally marking the open trade to market.

        With *current_price*, the open trade is reported with its
        unrealized P&L and that P&L is added to ``final_balance``.  The
        bot's state is not modified.
        """
        state = self._state
        active = state.open_trade
        effective_balance = state.balance

        if active is not None and current_price:
            unrealized = calculate_pnl(active, current_price)
            active = replace(
                active,
                pnl=unrealized,
                pnl_percent=pnl_percent(active, unrealized),
            )
            effective_balance += unrealized

        trades = list(state.closed_trades)
        if active is not None:
            trades.insert(0, active)

        return BacktestResult(
            trades=trades,
            final_balance=effective_balance,
            total_pnl=effective_balance - state.initial_balance,
            win_rate=calculate_win_rate(state.closed_trades),
            equity_curve=state.equity_curve,
            max_drawdown=state.tracker.max_drawdown_pct,
        )

    def close_open_trade(self, price: float, time: Optional[str] = None) -> BacktestResult:
        """Close the open trade at *price* with reason ``"MANUAL"``.

        *time* defaults to the newest processed candle, so the equity curve
        stays in candle-time order.

        Raises ``ValueError`` if no trade is open or *price* is not positive.
        """
        if self._state.open_trade is None:
            raise ValueError("No open trade to close")
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        exit_time = time or (self._processed[-1].time if self._processed else _now_iso())
        self._close_trade(price, exit_time, "MANUAL")
        self._state.tracker.record(exit_time, self._state.balance)
        return self.get_stats()

    def reset(
        self,
        initial_balance: float = DEFAULT_BALANCE,
        started_at: Optional[str] = None,
    ) -> BacktestResult:
        """Discard all history and start over with *initial_balance*."""
        self._state = new_state(initial_balance, started_at)
        self._processed = []
        logger.info("Bot reset — balance %.2f", initial_balance)
        return self.get_stats()

    # ── Per-candle evaluation ────────────────────────────────────────────

    def _evaluate_candle(self, index: int, candle: Candle, context: list[Candle]) -> None:
        """Exit check, then entry check, then an equity sample."""
        if index < MIN_HISTORY:
            return

        if self._state.open_trade is not None:
            self._check_exit(candle)

        if self._state.open_trade is None:
            self._check_entry(index, candle, context)

        self._state.tracker.record(candle.time, self._state.balance)

    def _check_exit(self, candle: Candle) -> None:
        hit = check_exit(self._state.open_trade, candle)
        if hit is not None:
            exit_price, reason = hit
            self._close_trade(exit_price, candle.time, reason)

    def _check_entry(self, index: int, candle: Candle, context: list[Candle]) -> None:
        pattern = detect_pattern(candle)
        if pattern is None:
            return

        zones = find_zones(
            context,
            window=self._pivot_window,
            threshold=self._zone_threshold,
            max_index=index,
        )
        signal = evaluate_signal(candle, pattern, zones)
        if signal == "WAIT":
            return

        self._state.trade_seq += 1
        trade = Trade(
            id=f"trade-{self._state.trade_seq}",
            entry_time=candle.time,
            entry_price=candle.close,
            side="LONG" if signal == "BUY" else "SHORT",
            size=calculate_size(self._state.balance, candle.close),
            status="OPEN",
            entry_reason=pattern,
        )
        self._state.open_trade = trade
        logger.info(
            "Opened %s %s at %.5f (size %.6f) — %s",
            trade.id, trade.side, trade.entry_price, trade.size, trade.entry_reason,
        )

    def _close_trade(self, price: float, time: str, reason: ExitReason) -> None:
        """Book the open trade's P&L and move it to the closed history."""
        trade = self._state.open_trade
        pnl = calculate_pnl(trade, price)
        self._state.balance += pnl

        closed = replace(
            trade,
            status="CLOSED",
            exit_time=time,
            exit_price=price,
            pnl=pnl,
            pnl_percent=pnl_percent(trade, pnl),
            exit_reason=reason,
        )
        self._state.closed_trades.insert(0, closed)
        self._state.open_trade = None
        logger.info(
            "Closed %s %s at %.5f (%s) — P&L %.2f, balance %.2f",
            closed.id, closed.side, price, reason, pnl, self._state.balance,
        )


def run_backtest(
    candles: list[Candle],
    initial_balance: float = DEFAULT_BALANCE,
) -> BacktestResult:
    """Run a one-shot backtest over *candles* with a fresh bot."""
    return TradingBot(initial_balance).update(candles)
