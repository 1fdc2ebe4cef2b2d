"""Bar fetching for the analysis pipeline."""

from pairsignal.data.fetcher import (
    PairBarFetcher,
    PairMarketData,
    bars_for_window,
    ohlcv_to_bars,
    parse_duration,
)

__all__ = [
    "PairBarFetcher",
    "PairMarketData",
    "bars_for_window",
    "ohlcv_to_bars",
    "parse_duration",
]
