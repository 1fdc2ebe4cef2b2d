"""Market data client implementation via ccxt async.

Wraps any ``ccxt.async_support`` exchange class selected by id, with market
loading, ticker price extraction and async cleanup.
"""

from decimal import Decimal

import ccxt.async_support as ccxt_async

from pairsignal.config import ExchangeSettings
from pairsignal.exceptions import MarketDataError
from pairsignal.exchange.client import MarketDataClient
from pairsignal.logging import get_logger

logger = get_logger(__name__)


class CcxtMarketDataClient(MarketDataClient):
    """Concrete market data client backed by a ccxt async exchange."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        exchange_class = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_class is None:
            raise MarketDataError(f"Unknown ccxt exchange id: {settings.exchange_id!r}")

        config: dict = {"enableRateLimit": True}
        api_key = settings.api_key.get_secret_value()
        if api_key:
            config["apiKey"] = api_key
            config["secret"] = settings.api_secret.get_secret_value()

        self._exchange = exchange_class(config)
        self._markets: dict = {}

    @property
    def exchange(self):
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets.

        Raises:
            MarketDataError: if markets cannot be loaded.
        """
        logger.info("connecting_to_exchange", exchange=self._settings.exchange_id)
        try:
            self._markets = await self._exchange.load_markets()
        except ccxt_async.BaseError as e:
            raise MarketDataError(
                f"Could not load markets from {self._settings.exchange_id}: {e}"
            ) from e
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("exchange_connection_closed", exchange=self._settings.exchange_id)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str,
        limit: int,
        since: int | None = None,
    ) -> list[list]:
        """Fetch OHLCV rows for a symbol, oldest first."""
        return await self._exchange.fetch_ohlcv(symbol, timeframe=timeframe, since=since, limit=limit)

    async def fetch_last_price(self, symbol: str) -> Decimal | None:
        """Fetch the ticker and return its last (or close) price as Decimal."""
        ticker = await self._exchange.fetch_ticker(symbol)
        price = ticker.get("last") or ticker.get("close")
        if price is None:
            return None
        return Decimal(str(price))
