"""Strategy data models — typed representations for candles, zones, trades and results."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional


Bias = Literal["BULLISH", "BEARISH", "NEUTRAL"]
Signal = Literal["BUY", "SELL", "WAIT"]
ZoneKind = Literal["SUPPLY", "DEMAND"]
Side = Literal["LONG", "SHORT"]
TradeStatus = Literal["OPEN", "CLOSED"]
ExitReason = Literal["STOP_LOSS", "TAKE_PROFIT", "SIGNAL_FLIP", "MANUAL"]


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar.

    ``ema`` is ``None`` until the indicator pass attaches a value.
    """

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    ema: Optional[float] = None


@dataclass(frozen=True)
class Zone:
    """A clustered supply (resistance) or demand (support) price level."""

    price: float
    kind: ZoneKind
    strength: int  # number of pivots clustered into the zone


@dataclass(frozen=True)
class StrategyResult:
    """Advisory analysis of the most recent candle."""

    bias: Bias
    pattern: Optional[str]
    zones: list[Zone]
    signal: Signal
    stop_loss: Optional[float] = None
    risk_reward: Optional[str] = None


@dataclass(frozen=True)
class Trade:
    """A paper trade.  Transitions produce new instances."""

    id: str
    entry_time: str
    entry_price: float
    side: Side
    size: float  # units of the asset
    status: TradeStatus
    pnl: float = 0.0
    pnl_percent: float = 0.0
    entry_reason: str = ""
    exit_time: Optional[str] = None
    exit_price: Optional[float] = None
    exit_reason: Optional[ExitReason] = None


@dataclass(frozen=True)
class EquityPoint:
    """One sample of the equity curve."""

    time: str
    value: float


@dataclass(frozen=True)
class BacktestResult:
    """Snapshot of the paper-trading bot's performance.

    ``trades`` lists the open trade (if any) first, then closed trades
    newest-first.  ``win_rate`` and ``max_drawdown`` are percentages.
    """

    trades: list[Trade]
    final_balance: float
    total_pnl: float
    win_rate: float
    equity_curve: list[EquityPoint]
    max_drawdown: float


def parse_time(value: str) -> datetime:
    """Parse an ISO-8601 candle time into an aware UTC ``datetime``.

    Accepts a trailing ``Z``.  Naive values are assumed to be UTC.
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
