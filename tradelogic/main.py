"""TradeLogic — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
live paper trading and one-shot backtests.
"""

import logging

from fastapi import FastAPI

from tradelogic.api.routers import router

app = FastAPI(title="TradeLogic Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradelogic")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from tradelogic.api.routers import configure_routers
    from tradelogic.config import load_config
    from tradelogic.data.coindcx_client import CoinDCXClient
    from tradelogic.engine import TradingEngine

    parser = argparse.ArgumentParser(description="TradeLogic paper-trading bot")
    parser.add_argument(
        "--mode",
        choices=["live", "backtest"],
        default="live",
        help="Run mode (default: live)",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Backtest on generated candles instead of fetched ones",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=200,
        help="Number of generated candles for --mock (default: 200)",
    )
    parser.add_argument("--seed", type=int, help="Random seed for --mock")
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    client = CoinDCXClient(config)

    if args.mode == "backtest":
        _run_backtest(config, client, args.mock, args.count, args.seed)
        return

    engine = TradingEngine(config, client)
    configure_routers(engine=engine)

    import signal

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        engine.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    asyncio.run(_run_live(engine, config.health_port, config.poll_interval_seconds))


async def _run_live(engine, port: int = 8080, poll_interval: int = 5) -> None:
    """Start the API server and the polling engine concurrently."""
    import asyncio
    import uvicorn

    logger.info(
        "Starting TradeLogic on %s/%s (poll every %ss).",
        engine.pair, engine.timeframe, poll_interval,
    )

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        server.serve(),
        engine.run(poll_interval),
        return_exceptions=True,
    )
    logger.info("TradeLogic stopped. Results: %s", results[-1:])


def _run_backtest(config, client, use_mock: bool, count: int, seed) -> None:
    """Fetch (or generate) candles once and run a backtest over them."""
    import asyncio

    from tradelogic.backtest.engine import run_backtest
    from tradelogic.backtest.stats import calculate_stats
    from tradelogic.cli.dashboard import print_status
    from tradelogic.data.mock import generate_mock_data

    if use_mock:
        candles = generate_mock_data(count=count, seed=seed)
        pair = "MOCK"
    else:
        candles = asyncio.run(client.fetch_candles(config.trade_pair, config.timeframe))
        pair = config.trade_pair

    result = run_backtest(candles, config.initial_balance)
    stats = calculate_stats(result.trades)
    logger.info(
        "Backtest complete: %d candles, %d trades, PnL: $%.2f, Win rate: %.1f%%",
        len(candles),
        stats["total_trades"],
        result.total_pnl,
        result.win_rate,
    )
    print_status(result, pair=pair, timeframe=config.timeframe)


if __name__ == "__main__":
    _run_cli()
