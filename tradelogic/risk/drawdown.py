"""Equity curve and drawdown tracking — pure math, no I/O.

Tracks the running peak of realized equity and the deepest fractional
decline from it.  Both only ever ratchet: the peak never falls and the
maximum drawdown never shrinks until the tracker is replaced.
"""

from tradelogic.strategy.models import EquityPoint


class DrawdownTracker:
    """Records equity samples and computes drawdown metrics.

    Args:
        initial_equity: Starting account equity.
        started_at: Time label of the seed sample on the equity curve.
    """

    def __init__(self, initial_equity: float, started_at: str) -> None:
        if initial_equity <= 0:
            raise ValueError(
                f"initial_equity must be positive, got {initial_equity}"
            )
        self._initial_equity: float = initial_equity
        self._peak_equity: float = initial_equity
        self._current_equity: float = initial_equity
        self._max_drawdown: float = 0.0
        self._curve: list[EquityPoint] = [EquityPoint(started_at, initial_equity)]

    # ── Mutation ─────────────────────────────────────────────────────────

    def record(self, time: str, equity: float) -> None:
        """Append an equity sample and update peak and maximum drawdown."""
        self._curve.append(EquityPoint(time, equity))
        self._current_equity = equity
        if equity > self._peak_equity:
            self._peak_equity = equity
        drawdown = (self._peak_equity - equity) / self._peak_equity
        if drawdown > self._max_drawdown:
            self._max_drawdown = drawdown

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def initial_equity(self) -> float:
        """Equity at the start of the curve."""
        return self._initial_equity

    @property
    def peak_equity(self) -> float:
        """Highest equity recorded."""
        return self._peak_equity

    @property
    def current_equity(self) -> float:
        """Most recently recorded equity."""
        return self._current_equity

    @property
    def drawdown_pct(self) -> float:
        """Current drawdown as a percentage of peak equity."""
        return (
            (self._peak_equity - self._current_equity) / self._peak_equity
        ) * 100.0

    @property
    def max_drawdown_fraction(self) -> float:
        """Deepest drawdown seen, as a fraction of the peak at the time."""
        return self._max_drawdown

    @property
    def max_drawdown_pct(self) -> float:
        """Deepest drawdown seen, as a percentage."""
        return self._max_drawdown * 100.0

    @property
    def equity_curve(self) -> list[EquityPoint]:
        """Copy of the equity curve, oldest first."""
        return list(self._curve)
