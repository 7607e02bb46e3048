"""Backtest statistics — pure functions for trade-series analysis."""

from typing import Optional

from tradelogic.strategy.models import Trade


def calculate_win_rate(trades: list[Trade]) -> float:
    """Percentage of closed trades with a positive P&L.

    Open trades are ignored.  Returns 0.0 when nothing has closed.
    """
    closed = [t for t in trades if t.status == "CLOSED"]
    if not closed:
        return 0.0
    winners = [t for t in closed if t.pnl > 0]
    return (len(winners) / len(closed)) * 100.0


def calculate_stats(trades: list[Trade]) -> dict:
    """Compute summary statistics from closed trades.

    Returns:
        Dict with ``total_trades``, ``winning_trades``, ``losing_trades``,
        ``win_rate`` (percent), ``profit_factor`` and ``net_pnl``.
    """
    closed = [t for t in trades if t.status == "CLOSED"]
    if not closed:
        return {
            "total_trades": 0,
            "winning_trades": 0,
            "losing_trades": 0,
            "win_rate": 0.0,
            "profit_factor": None,
            "net_pnl": 0.0,
        }

    pnls = [t.pnl for t in closed]
    winners = [p for p in pnls if p > 0]
    losers = [p for p in pnls if p <= 0]

    gross_profit = sum(winners)
    gross_loss = abs(sum(losers))
    profit_factor: Optional[float] = (
        gross_profit / gross_loss if gross_loss > 0 else None
    )

    return {
        "total_trades": len(pnls),
        "winning_trades": len(winners),
        "losing_trades": len(losers),
        "win_rate": round(calculate_win_rate(closed), 2),
        "profit_factor": round(profit_factor, 4) if profit_factor is not None else None,
        "net_pnl": round(sum(pnls), 2),
    }
