"""Candlestick pattern classification from wick/body geometry."""

from typing import Optional

from tradelogic.strategy.models import Candle


BULLISH_PIN_BAR = "Bullish Pin Bar"
BEARISH_PIN_BAR = "Bearish Pin Bar"
BULLISH_MOMENTUM = "Bullish Momentum"
BEARISH_MOMENTUM = "Bearish Momentum"

# Pin bar: rejection wick longer than this multiple of the body
_PIN_WICK_RATIO = 2.0
# Momentum (marubozu-like): body covers more than this share of the range
_MOMENTUM_BODY_SHARE = 0.8


def detect_pattern(candle: Candle) -> Optional[str]:
    """Classify a single candle.

    Checks, in priority order:

    1. Lower wick > 2 × body and upper wick < body → ``"Bullish Pin Bar"``
    2. Upper wick > 2 × body and lower wick < body → ``"Bearish Pin Bar"``
    3. Body > 80 % of the range → ``"Bullish Momentum"`` /
       ``"Bearish Momentum"`` depending on candle colour.

    Returns ``None`` for a flat candle (zero range) or when nothing matches.
    """
    body = abs(candle.close - candle.open)
    lower_wick = min(candle.open, candle.close) - candle.low
    upper_wick = candle.high - max(candle.open, candle.close)
    total_range = candle.high - candle.low

    if total_range == 0:
        return None

    if lower_wick > _PIN_WICK_RATIO * body and upper_wick < body:
        return BULLISH_PIN_BAR
    if upper_wick > _PIN_WICK_RATIO * body and lower_wick < body:
        return BEARISH_PIN_BAR

    if body > total_range * _MOMENTUM_BODY_SHARE:
        return BULLISH_MOMENTUM if candle.close > candle.open else BEARISH_MOMENTUM

    return None


def is_bullish(pattern: Optional[str]) -> bool:
    """``True`` for any bullish pattern variant."""
    return pattern is not None and "Bullish" in pattern


def is_bearish(pattern: Optional[str]) -> bool:
    """``True`` for any bearish pattern variant."""
    return pattern is not None and "Bearish" in pattern
