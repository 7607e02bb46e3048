"""Stop-loss and take-profit levels and exit detection — pure math, no I/O.

Levels are fixed percentages of the entry price: a 1 % stop and a 2 %
target.  An exit fills at the exact level touched (a resting stop/limit
order), not at the candle close.
"""

from dataclasses import dataclass
from typing import Optional

from tradelogic.strategy.models import Candle, ExitReason, Side, Trade


SL_PCT = 0.01
TP_PCT = 0.02


@dataclass(frozen=True)
class RiskLevels:
    """Stop-loss and take-profit prices for a position."""

    sl: float
    tp: float


def calculate_levels(
    entry_price: float,
    side: Side,
    sl_pct: float = SL_PCT,
    tp_pct: float = TP_PCT,
) -> RiskLevels:
    """Compute the stop and target for a position opened at *entry_price*.

    LONG: stop below entry, target above.  SHORT: the mirror image.
    """
    if side == "LONG":
        return RiskLevels(sl=entry_price * (1 - sl_pct), tp=entry_price * (1 + tp_pct))
    if side == "SHORT":
        return RiskLevels(sl=entry_price * (1 + sl_pct), tp=entry_price * (1 - tp_pct))
    raise ValueError(f"side must be 'LONG' or 'SHORT', got '{side}'")


def check_exit(trade: Trade, candle: Candle) -> Optional[tuple[float, ExitReason]]:
    """Check whether *candle* touches the stop or target of *trade*.

    Returns ``(exit_price, reason)`` or ``None``.

    The stop is checked first, so a candle whose range spans both levels
    exits at the stop.
    """
    levels = calculate_levels(trade.entry_price, trade.side)

    if trade.side == "LONG":
        if candle.low <= levels.sl:
            return levels.sl, "STOP_LOSS"
        if candle.high >= levels.tp:
            return levels.tp, "TAKE_PROFIT"
    else:
        if candle.high >= levels.sl:
            return levels.sl, "STOP_LOSS"
        if candle.low <= levels.tp:
            return levels.tp, "TAKE_PROFIT"
    return None


def calculate_pnl(trade: Trade, exit_price: float) -> float:
    """P&L of *trade* exiting (or marked) at *exit_price*."""
    if trade.side == "LONG":
        return (exit_price - trade.entry_price) * trade.size
    return (trade.entry_price - exit_price) * trade.size


def pnl_percent(trade: Trade, pnl: float) -> float:
    """*pnl* as a percentage of the position's notional at entry."""
    notional = trade.entry_price * trade.size
    if notional == 0:
        return 0.0
    return (pnl / notional) * 100.0
