"""Signal fusion — bias, pattern and zone proximity. Pure functions, no I/O.

Two flavours share the same building blocks:

* ``evaluate_signal()`` is the strict rule the trading bot acts on: the
  bias, a same-direction pattern and a nearby zone of the matching kind
  must all agree.
* ``run_strategy()`` analyses the latest candle for display.  It also
  accepts a lone pin bar without zone confirmation and suggests a stop.
  Its output is advisory only.
"""

from typing import Optional

from tradelogic.strategy.indicators import attach_ema
from tradelogic.strategy.models import (
    Bias,
    Candle,
    Signal,
    StrategyResult,
    Zone,
    ZoneKind,
)
from tradelogic.strategy.patterns import (
    BEARISH_PIN_BAR,
    BULLISH_PIN_BAR,
    detect_pattern,
    is_bearish,
    is_bullish,
)
from tradelogic.strategy.zones import find_zones


# A zone is "nearby" when within this fraction of the close
ZONE_PROXIMITY = 0.02


def get_bias(candle: Candle) -> Bias:
    """Price above its EMA → ``"BULLISH"``, otherwise ``"BEARISH"``.

    A candle with no indicator attached defaults to ``"BULLISH"``.
    """
    if candle.ema is None:
        return "BULLISH"
    return "BULLISH" if candle.close > candle.ema else "BEARISH"


def has_nearby_zone(
    close: float,
    zones: list[Zone],
    kind: ZoneKind,
    proximity: float = ZONE_PROXIMITY,
) -> bool:
    """Check whether any zone of *kind* lies within *proximity* of *close*."""
    return any(
        z.kind == kind and abs(close - z.price) / close < proximity
        for z in zones
    )


def evaluate_signal(
    candle: Candle,
    pattern: Optional[str],
    zones: list[Zone],
) -> Signal:
    """Fuse bias, pattern and zones into a trade signal.

    * BULLISH bias + bullish pattern + nearby DEMAND zone → ``"BUY"``
    * BEARISH bias + bearish pattern + nearby SUPPLY zone → ``"SELL"``
    * anything else → ``"WAIT"``
    """
    bias = get_bias(candle)
    if bias == "BULLISH":
        if is_bullish(pattern) and has_nearby_zone(candle.close, zones, "DEMAND"):
            return "BUY"
    elif is_bearish(pattern) and has_nearby_zone(candle.close, zones, "SUPPLY"):
        return "SELL"
    return "WAIT"


def run_strategy(
    candles: list[Candle],
    ema_period: int = 9,
) -> tuple[list[Candle], StrategyResult]:
    """Analyse the most recent candle of *candles*.

    Recomputes the EMA over the whole sequence and detects zones with no
    causal limit (live view).  Suggested stops:

    * BUY confirmed by a demand zone: ``0.99 × low``
    * BUY on a lone Bullish Pin Bar: ``0.995 × low``
    * SELL confirmed by a supply zone: ``1.01 × high``
    * SELL on a lone Bearish Pin Bar: ``1.005 × high``

    A nominal ``"1:2"`` risk-reward label accompanies any stop.

    Returns:
        ``(processed_candles, StrategyResult)``.

    Raises ``ValueError`` if *candles* is empty.
    """
    if not candles:
        raise ValueError("Need at least 1 candle to run the strategy, got 0")

    processed = attach_ema(candles, ema_period)
    last = processed[-1]
    bias = get_bias(last)
    pattern = detect_pattern(last)
    zones = find_zones(processed)

    signal: Signal = "WAIT"
    stop_loss: Optional[float] = None

    if bias == "BULLISH":
        if is_bullish(pattern) and has_nearby_zone(last.close, zones, "DEMAND"):
            signal = "BUY"
            stop_loss = last.low * 0.99
        elif pattern == BULLISH_PIN_BAR:
            signal = "BUY"
            stop_loss = last.low * 0.995
    else:
        if is_bearish(pattern) and has_nearby_zone(last.close, zones, "SUPPLY"):
            signal = "SELL"
            stop_loss = last.high * 1.01
        elif pattern == BEARISH_PIN_BAR:
            signal = "SELL"
            stop_loss = last.high * 1.005

    result = StrategyResult(
        bias=bias,
        pattern=pattern,
        zones=zones,
        signal=signal,
        stop_loss=stop_loss,
        risk_reward="1:2" if stop_loss is not None else None,
    )
    return processed, result
