"""Supply/demand zone detection from pivot highs and lows — pure functions."""

from dataclasses import replace
from typing import Optional

from tradelogic.strategy.models import Candle, Zone, ZoneKind


MAX_ZONES = 5


def _is_pivot_low(candles: list[Candle], i: int, window: int, last: int) -> bool:
    """A pivot low has a low <= every low in ``[i - window, i + window]``.

    Indices beyond *last* are not visible and are left out of the window.
    """
    low = candles[i].low
    for j in range(i - window, min(i + window, last) + 1):
        if candles[j].low < low:
            return False
    return True


def _is_pivot_high(candles: list[Candle], i: int, window: int, last: int) -> bool:
    """A pivot high has a high >= every high in ``[i - window, i + window]``."""
    high = candles[i].high
    for j in range(i - window, min(i + window, last) + 1):
        if candles[j].high > high:
            return False
    return True


def _add_pivot(zones: list[Zone], price: float, kind: ZoneKind, threshold: float) -> None:
    """Strengthen the first zone within *threshold* of *price*, or append one.

    The match ignores zone kind: a pivot high close to an existing demand
    zone strengthens that zone.
    """
    for idx, zone in enumerate(zones):
        if abs(zone.price - price) / price < threshold:
            zones[idx] = replace(zone, strength=zone.strength + 1)
            return
    zones.append(Zone(price=price, kind=kind, strength=1))


def find_zones(
    candles: list[Candle],
    window: int = 10,
    threshold: float = 0.005,
    max_index: Optional[int] = None,
) -> list[Zone]:
    """Detect supply and demand zones.

    Args:
        candles: Candle history, oldest-first.
        window: Half-window size for pivot detection.
        threshold: Relative price tolerance for clustering pivots (0.005 = 0.5 %).
        max_index: Causal limit.  Only ``candles[0..max_index]`` are visible;
            ``None`` means the whole sequence is visible.

    A pivot at index ``i`` is only confirmed once ``i + window`` is
    visible, so the result for a given *max_index* is the same no matter
    how much data follows it.  A swing fewer than *window* candles before
    *max_index* is therefore not yet a zone, so replayed entries only see
    swings that were fully confirmed at the time.

    Returns:
        The most recently detected ``MAX_ZONES`` zones, in detection order.
    """
    last = len(candles) - 1
    if max_index is not None:
        last = min(max_index, last)

    zones: list[Zone] = []
    for i in range(window, last + 1 - window):
        if _is_pivot_low(candles, i, window, last):
            _add_pivot(zones, candles[i].low, "DEMAND", threshold)
        if _is_pivot_high(candles, i, window, last):
            _add_pivot(zones, candles[i].high, "SUPPLY", threshold)

    return zones[-MAX_ZONES:]
