"""Exchange client layer -- read-only market data via ccxt."""

from pairsignal.exchange.ccxt_client import CcxtMarketDataClient
from pairsignal.exchange.client import MarketDataClient

__all__ = ["CcxtMarketDataClient", "MarketDataClient"]
