"""Internal API routers — /status, /strategy, /trades and control endpoints.

No business logic. Serves the latest snapshots pushed by the engine and
delegates control actions to it.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Query

from tradelogic.config import SUPPORTED_TIMEFRAMES
from tradelogic.strategy.models import BacktestResult, StrategyResult

logger = logging.getLogger("tradelogic")
router = APIRouter()

# ── Shared state (set during app startup / by the engine) ────────────────

_DEFAULT_STATUS: dict = {
    "running": False,
    "pair": None,
    "timeframe": None,
    "balance": None,
    "total_pnl": None,
    "win_rate": None,
    "max_drawdown_pct": None,
    "open_trade": None,
    "closed_trades": 0,
    "last_price": None,
    "cycle_count": 0,
    "last_cycle_at": None,
    "last_error": None,
}

_bot_status: dict = {**_DEFAULT_STATUS}
_trades: list[dict] = []
_equity_curve: list[dict] = []
_strategy_insight: dict = {}
_engine = None  # Set via configure_routers()


def configure_routers(engine=None, reset_state: bool = False) -> None:
    """Inject the live engine from application startup.

    Args:
        engine: A ``TradingEngine`` instance (or duck-type for tests).
        reset_state: Clear all published snapshots.
    """
    global _engine  # noqa: PLW0603
    _engine = engine
    if reset_state:
        _bot_status.clear()
        _bot_status.update(_DEFAULT_STATUS)
        _trades.clear()
        _equity_curve.clear()
        _strategy_insight.clear()


def update_bot_status(**fields) -> None:
    """Update individual fields of the status dict."""
    _bot_status.update(fields)


def publish_snapshot(result: BacktestResult, last_price: Optional[float] = None) -> None:
    """Publish a bot snapshot for the status and trades endpoints."""
    trades = [asdict(t) for t in result.trades]
    open_trade = next((t for t in trades if t["status"] == "OPEN"), None)

    _trades.clear()
    _trades.extend(trades)
    _equity_curve.clear()
    _equity_curve.extend(asdict(p) for p in result.equity_curve)

    update_bot_status(
        balance=round(result.final_balance, 2),
        total_pnl=round(result.total_pnl, 2),
        win_rate=round(result.win_rate, 2),
        max_drawdown_pct=round(result.max_drawdown, 2),
        open_trade=open_trade,
        closed_trades=sum(1 for t in trades if t["status"] == "CLOSED"),
        last_price=last_price,
    )


def update_strategy_insight(result: StrategyResult, evaluated_at: str) -> None:
    """Store the latest advisory strategy analysis."""
    _strategy_insight.clear()
    _strategy_insight.update(asdict(result))
    _strategy_insight["evaluated_at"] = evaluated_at


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Return the bot's balance, performance and cycle info."""
    return dict(_bot_status)


@router.get("/strategy")
async def get_strategy():
    """Return the latest strategy analysis of the most recent candle."""
    if not _strategy_insight:
        return {"signal": None}
    return dict(_strategy_insight)


@router.get("/trades")
async def get_trades(
    limit: int = Query(default=50, ge=1, le=500),
    status: Optional[str] = Query(default=None),
):
    """Return trades, open first, then closed newest-first."""
    trades = _trades
    if status is not None:
        trades = [t for t in trades if t["status"] == status.upper()]
    return {"trades": trades[:limit], "total": len(trades)}


@router.get("/equity")
async def get_equity():
    """Return the realized equity curve."""
    return {"equity_curve": list(_equity_curve)}


# ── Control actions ──────────────────────────────────────────────────────


@router.post("/market")
async def post_market(body: dict):
    """Switch the tracked pair/timeframe.  Resets the bot."""
    if _engine is None:
        return {"error": "No engine"}

    pair = body.get("pair") or _engine.pair
    timeframe = str(body.get("timeframe") or _engine.timeframe)
    if timeframe not in SUPPORTED_TIMEFRAMES:
        return {
            "error": f"timeframe must be one of {', '.join(SUPPORTED_TIMEFRAMES)}"
        }

    await _engine.switch_market(pair, timeframe)
    logger.info("Market switched to %s/%s via API.", pair, timeframe)
    return {"status": "switched", "pair": pair, "timeframe": timeframe}


@router.post("/reset")
async def post_reset():
    """Discard all bot history for the current market."""
    if _engine is None:
        return {"error": "No engine"}
    await _engine.reset()
    logger.info("Bot reset via API.")
    return {"status": "reset"}
