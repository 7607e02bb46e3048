"""CoinDCX public market-data async client.

Fetches futures candlesticks and the latest trade price.  No
authentication is needed for these endpoints.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from tradelogic.config import Config
from tradelogic.strategy.models import Candle

logger = logging.getLogger("tradelogic")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}

# Request a window of ~200 candles for each resolution
_CANDLE_WINDOW = 200
_RESOLUTION_SECONDS: dict[str, int] = {
    "1": 60,
    "5": 5 * 60,
    "60": 60 * 60,
    "1D": 24 * 60 * 60,
}


class DataFetchError(RuntimeError):
    """The API answered, but not with usable market data."""


def _ms_to_iso(ms: float) -> str:
    """Epoch milliseconds → ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    dt = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CoinDCXClient:
    """Async client wrapping the CoinDCX public market-data API."""

    def __init__(self, config: Config) -> None:
        self._base_url = config.data_base_url.rstrip("/")
        self._headers = {"Accept": "application/json"}

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, url: str, **kwargs) -> httpx.Response:
        """Execute a GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately, and the last
        error is raised without a further wait once retries run out.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        url,
                        headers=self._headers,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code not in _RETRYABLE_STATUS_CODES:
                    resp.raise_for_status()
                    return resp

                reason = f"returned {resp.status_code}"
                last_exc = httpx.HTTPStatusError(
                    f"Server error '{resp.status_code}'",
                    request=resp.request,
                    response=resp,
                )

            except httpx.TransportError as exc:
                reason = f"transport error ({exc})"
                last_exc = exc

            if attempt == _MAX_RETRIES - 1:
                break
            delay = _RETRY_BASE_DELAY * (2 ** attempt)
            logger.warning(
                "CoinDCX GET %s %s, retry %d/%d in %.1fs",
                url, reason, attempt + 1, _MAX_RETRIES, delay,
            )
            await asyncio.sleep(delay)

        logger.error("CoinDCX GET %s failed after %d attempts", url, _MAX_RETRIES)
        raise last_exc  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        pair: str,
        resolution: str = "60",
        now: Optional[datetime] = None,
    ) -> list[Candle]:
        """Fetch futures candlesticks ending at *now*.

        Args:
            pair: e.g. ``"B-BTC_USDT"``
            resolution: ``"1"``, ``"5"``, ``"60"`` or ``"1D"``
            now: End of the window.  Defaults to the current UTC time.

        Returns:
            List of ``Candle`` objects ordered oldest-first.

        Raises:
            DataFetchError: If the payload status is not ``"ok"``.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        to_ts = int(now.timestamp())
        step = _RESOLUTION_SECONDS.get(resolution, _RESOLUTION_SECONDS["60"])
        from_ts = to_ts - _CANDLE_WINDOW * step

        params = {
            "pair": pair,
            "from": str(from_ts),
            "to": str(to_ts),
            "resolution": resolution,
            "pcode": "f",  # futures
        }
        url = f"{self._base_url}/market_data/candlesticks"
        resp = await self._get_with_retry(url, params=params)

        payload = resp.json()
        if payload.get("s") != "ok" or not isinstance(payload.get("data"), list):
            raise DataFetchError(
                f"CoinDCX returned an unusable candle payload for {pair}: "
                f"status={payload.get('s')!r}"
            )

        rows = sorted(payload["data"], key=lambda c: c["time"])
        return [
            Candle(
                time=_ms_to_iso(c["time"]),
                open=float(c["open"]),
                high=float(c["high"]),
                low=float(c["low"]),
                close=float(c["close"]),
                volume=float(c["volume"]),
            )
            for c in rows
        ]

    # ── Ticker ───────────────────────────────────────────────────────────

    async def fetch_ticker(self, pair: str) -> Optional[float]:
        """Return the most recent trade price for *pair*, or ``None``."""
        url = f"{self._base_url}/market_data/trade_history"
        resp = await self._get_with_retry(url, params={"pair": pair, "limit": "1"})

        payload = resp.json()
        if isinstance(payload, list) and payload:
            return float(payload[0]["p"])
        return None
