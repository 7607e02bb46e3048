"""Synthetic candle series for offline runs and tests."""

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from tradelogic.strategy.models import Candle


def generate_mock_data(
    count: int = 100,
    start_price: float = 65_000.0,
    seed: Optional[int] = None,
    end: Optional[datetime] = None,
) -> list[Candle]:
    """Generate *count* hourly candles as a random walk.

    Each step moves the close by up to ±1 % (2 % volatility band) and
    adds wicks of up to half the volatility on each side.  The first candle
    starts ``count`` hours before *end* (default: now, UTC) and the last
    one hour before it.
    """
    rng = random.Random(seed)
    if end is None:
        end = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    time = end - timedelta(hours=count)

    candles: list[Candle] = []
    price = start_price
    for _ in range(count):
        volatility = price * 0.02
        change = (rng.random() - 0.5) * volatility

        open_ = price
        close = price + change
        high = max(open_, close) + rng.random() * volatility * 0.5
        low = min(open_, close) - rng.random() * volatility * 0.5

        candles.append(
            Candle(
                time=time.isoformat().replace("+00:00", "Z"),
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=float(rng.randint(10_000, 110_000)),
            )
        )
        price = close
        time += timedelta(hours=1)
    return candles
