"""CLI dashboard — prints bot performance to the console."""

from tradelogic.backtest.stats import calculate_stats
from tradelogic.strategy.models import BacktestResult


def print_status(result: BacktestResult, pair: str = "N/A", timeframe: str = "N/A") -> str:
    """Format and print a performance snapshot.

    Args:
        result: Snapshot returned by ``TradingBot.update`` / ``get_stats``.
        pair: Instrument label.
        timeframe: Candle resolution label.

    Returns:
        The formatted string (also printed to stdout).
    """
    stats = calculate_stats(result.trades)
    open_trade = next((t for t in result.trades if t.status == "OPEN"), None)
    pf = stats["profit_factor"]

    pf_str = f"{pf:.2f}" if pf is not None else "N/A"
    open_str = (
        f"{open_trade.side} @ {open_trade.entry_price:,.2f} (P&L {open_trade.pnl:+,.2f})"
        if open_trade is not None
        else "none"
    )

    lines = [
        "──────────────── TradeLogic Status ────────────────",
        f"  Pair:            {pair}",
        f"  Timeframe:       {timeframe}",
        f"  Balance:         ${result.final_balance:,.2f}",
        f"  Total P&L:       ${result.total_pnl:+,.2f}",
        f"  Closed Trades:   {stats['total_trades']}",
        f"  Win Rate:        {result.win_rate:.1f}%",
        f"  Profit Factor:   {pf_str}",
        f"  Max Drawdown:    {result.max_drawdown:.2f}%",
        f"  Open Trade:      {open_str}",
        "───────────────────────────────────────────────────",
    ]
    output = "\n".join(lines)
    print(output)
    return output
