"""Pair bar fetch pipeline with concurrent legs and exponential backoff retry.

Fetches the reference and comparison OHLCV sequences concurrently and only
returns once BOTH have resolved: the analysis pipeline never sees a partial
pair. Live prices are fetched alongside; a missing price is not fatal since
the last bar close is an acceptable substitute.

CRITICAL: All prices use Decimal. ccxt floats are converted through str.
"""

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal

import ccxt.async_support as ccxt_async

from pairsignal.config import FetchSettings
from pairsignal.exceptions import MarketDataError
from pairsignal.exchange.client import MarketDataClient
from pairsignal.logging import get_logger
from pairsignal.models import Bar, PairSymbols

logger = get_logger(__name__)

# Case-sensitive: ccxt uses "m" for minutes and "M" for months
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([mhdwM])\s*$")
_UNIT_SECONDS = {"m": 60, "h": 3_600, "d": 86_400, "w": 604_800, "M": 2_592_000}


def parse_duration(value: str) -> int:
    """Parse a duration like ``15m``, ``4h``, ``7d``, ``1w`` or ``1M`` into seconds.

    Units follow ccxt timeframes; a month (``M``) counts as 30 days.

    Raises:
        ValueError: if the string is not a positive count followed by m/h/d/w/M.
    """
    match = _DURATION_RE.match(value)
    if match is None or int(match.group(1)) == 0:
        raise ValueError(f"Invalid duration {value!r}, expected e.g. '15m', '1h', '7d'")
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def bars_for_window(window: str, interval: str) -> int:
    """Number of ``interval`` bars covering a ``window`` lookback.

    Example: ``bars_for_window("7d", "1h") == 168``.

    Raises:
        ValueError: if either duration is invalid or the window is shorter
            than one bar.
    """
    count = parse_duration(window) // parse_duration(interval)
    if count < 1:
        raise ValueError(f"Window {window!r} is shorter than one {interval!r} bar")
    return count


def _to_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def ohlcv_to_bars(rows: list[list]) -> list[Bar]:
    """Convert ccxt OHLCV rows into Bars sorted oldest first."""
    bars = [
        Bar(
            timestamp_ms=int(row[0]),
            open=_to_decimal(row[1]),
            high=_to_decimal(row[2]),
            low=_to_decimal(row[3]),
            close=_to_decimal(row[4]),
            volume=_to_decimal(row[5]) if len(row) > 5 else None,
        )
        for row in rows
    ]
    bars.sort(key=lambda b: b.timestamp_ms)
    return bars


async def _gather_legs(*coros):
    """Run both legs concurrently; if one fails, cancel and await the other.

    No leg task outlives the call.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass(frozen=True)
class PairMarketData:
    """Both legs' bars plus whatever live prices could be fetched."""

    symbols: PairSymbols
    reference_bars: list[Bar]
    comparison_bars: list[Bar]
    current_prices: dict[str, Decimal] = field(default_factory=dict)


class PairBarFetcher:
    """Fetches aligned-ready bar sequences for a symbol pair.

    Usage:
        fetcher = PairBarFetcher(client, settings)
        data = await fetcher.fetch_pair(PairSymbols("BTC/USDT", "ETH/USDT"))
    """

    def __init__(self, client: MarketDataClient, settings: FetchSettings) -> None:
        self._client = client
        self._settings = settings
        self._limit = bars_for_window(settings.window, settings.interval)

    @property
    def bar_limit(self) -> int:
        return self._limit

    async def fetch_pair(self, symbols: PairSymbols) -> PairMarketData:
        """Fetch both legs concurrently and wait for both.

        Raises:
            MarketDataError: if either leg's bars cannot be fetched.
        """
        reference_bars, comparison_bars = await _gather_legs(
            self._fetch_bars(symbols.reference),
            self._fetch_bars(symbols.comparison),
        )
        reference_price, comparison_price = await _gather_legs(
            self._fetch_price_or_none(symbols.reference),
            self._fetch_price_or_none(symbols.comparison),
        )

        prices: dict[str, Decimal] = {}
        if reference_price is not None:
            prices[symbols.reference] = reference_price
        if comparison_price is not None:
            prices[symbols.comparison] = comparison_price

        logger.info(
            "pair_fetched",
            reference=symbols.reference,
            comparison=symbols.comparison,
            reference_bars=len(reference_bars),
            comparison_bars=len(comparison_bars),
            live_prices=len(prices),
        )
        return PairMarketData(
            symbols=symbols,
            reference_bars=reference_bars,
            comparison_bars=comparison_bars,
            current_prices=prices,
        )

    async def _fetch_bars(self, symbol: str) -> list[Bar]:
        rows = await self._fetch_with_retry(
            self._client.fetch_ohlcv,
            symbol,
            timeframe=self._settings.interval,
            limit=self._limit,
        )
        return ohlcv_to_bars(rows)

    async def _fetch_price_or_none(self, symbol: str) -> Decimal | None:
        try:
            return await self._fetch_with_retry(self._client.fetch_last_price, symbol)
        except MarketDataError:
            logger.warning("live_price_unavailable", symbol=symbol, fallback="last_close")
            return None

    # ──────────────────────────────────────────────
    # Retry wrapper
    # ──────────────────────────────────────────────

    async def _fetch_with_retry(self, fetch_fn: Callable, *args, **kwargs):
        """Execute a fetch function with exponential backoff retry.

        Retries up to max_retries times with delays base, 2*base, 4*base...
        Handles ccxt rate limit errors with a longer delay multiplier.
        Raises MarketDataError on final failure.
        """
        max_retries = self._settings.max_retries
        base_delay = self._settings.retry_base_delay

        for attempt in range(max_retries):
            try:
                return await fetch_fn(*args, **kwargs)
            except ccxt_async.BaseError as e:
                if attempt == max_retries - 1:
                    logger.error(
                        "fetch_failed_permanently",
                        error=str(e),
                        attempts=max_retries,
                    )
                    raise MarketDataError(
                        f"{getattr(fetch_fn, '__name__', 'fetch')} failed after "
                        f"{max_retries} attempts: {e}"
                    ) from e

                delay = base_delay * (2**attempt)

                # Rate limit errors get a longer delay
                if isinstance(e, ccxt_async.RateLimitExceeded):
                    delay *= self._settings.rate_limit_delay_multiplier
                    logger.warning(
                        "rate_limit_exceeded",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                    )
                else:
                    logger.warning(
                        "fetch_retry",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )

                await asyncio.sleep(delay)

        raise MarketDataError("max_retries must be at least 1")
