"""TradeLogic — application configuration.

Loads .env variables into a typed config object.
Validates values on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


SUPPORTED_TIMEFRAMES = ("1", "5", "60", "1D")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    trade_pair: str  # CoinDCX futures pair, e.g. "B-BTC_USDT"
    timeframe: str  # candle resolution: "1", "5", "60" or "1D"
    initial_balance: float
    poll_interval_seconds: int
    data_base_url: str
    log_level: str
    health_port: int


def _parse_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


def _parse_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable when
    a value cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    timeframe = os.environ.get("TIMEFRAME", "60")
    if timeframe not in SUPPORTED_TIMEFRAMES:
        raise ValueError(
            f"TIMEFRAME must be one of {', '.join(SUPPORTED_TIMEFRAMES)}, "
            f"got '{timeframe}'"
        )

    initial_balance = _parse_float("INITIAL_BALANCE", "1000")
    if initial_balance <= 0:
        raise ValueError(
            f"INITIAL_BALANCE must be positive, got {initial_balance}"
        )

    poll_interval = _parse_int("POLL_INTERVAL_SECONDS", "5")
    if poll_interval <= 0:
        raise ValueError(
            f"POLL_INTERVAL_SECONDS must be positive, got {poll_interval}"
        )

    return Config(
        trade_pair=os.environ.get("TRADE_PAIR", "B-BTC_USDT"),
        timeframe=timeframe,
        initial_balance=initial_balance,
        poll_interval_seconds=poll_interval,
        data_base_url=os.environ.get("DATA_BASE_URL", "https://public.coindcx.com"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=_parse_int("HEALTH_PORT", "8080"),
    )
