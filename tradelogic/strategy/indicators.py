"""Technical indicators — EMA over closes. Pure functions, no I/O."""

from dataclasses import replace

from tradelogic.strategy.models import Candle


def calculate_ema(candles: list[Candle], period: int = 9) -> list[float]:
    """Calculate an Exponential Moving Average series over closes.

    Uses the standard EMA recurrence:
        ``EMA_today = close × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first value is seeded with the first close itself rather than an
    SMA, so the series has no warm-up gap and is defined for every candle.

    Returns a list the same length as *candles* (empty for empty input).

    Raises ``ValueError`` if *period* is not positive.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if not candles:
        return []

    k = 2.0 / (period + 1)
    ema: list[float] = [candles[0].close]
    for candle in candles[1:]:
        ema.append(candle.close * k + ema[-1] * (1 - k))
    return ema


def attach_ema(candles: list[Candle], period: int = 9) -> list[Candle]:
    """Return copies of *candles* with ``ema`` filled in.

    Always recomputes from the first candle, so the result never depends
    on a previously computed (possibly stale) series.
    """
    values = calculate_ema(candles, period)
    return [replace(c, ema=v) for c, v in zip(candles, values)]
