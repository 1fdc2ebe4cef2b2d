"""Tests for CcxtMarketDataClient.

All tests use a real ccxt exchange instance with its network methods
replaced by mocks to avoid real API calls.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import ccxt.async_support as ccxt_async
import pytest

from pairsignal.config import ExchangeSettings
from pairsignal.exceptions import MarketDataError
from pairsignal.exchange.ccxt_client import CcxtMarketDataClient

MOCK_MARKETS = {
    "BTC/USDT": {"id": "BTCUSDT", "symbol": "BTC/USDT", "base": "BTC", "quote": "USDT"},
    "ETH/USDT": {"id": "ETHUSDT", "symbol": "ETH/USDT", "base": "ETH", "quote": "USDT"},
}


@pytest.fixture
def exchange_settings() -> ExchangeSettings:
    """Public-data settings (no credentials)."""
    return ExchangeSettings(exchange_id="binance")


@pytest.fixture
def client(exchange_settings: ExchangeSettings) -> CcxtMarketDataClient:
    return CcxtMarketDataClient(exchange_settings)


class TestInit:
    """Tests for client construction."""

    def test_selects_exchange_by_id(self, client: CcxtMarketDataClient) -> None:
        assert isinstance(client.exchange, ccxt_async.binance)
        assert client.exchange.enableRateLimit is True

    def test_unknown_exchange_raises(self) -> None:
        with pytest.raises(MarketDataError, match="Unknown ccxt exchange id"):
            CcxtMarketDataClient(ExchangeSettings(exchange_id="not-a-real-exchange"))

    def test_credentials_passed_when_set(self) -> None:
        settings = ExchangeSettings(
            exchange_id="binance",
            api_key="test-key",  # type: ignore[arg-type]
            api_secret="test-secret",  # type: ignore[arg-type]
        )
        client = CcxtMarketDataClient(settings)
        assert client.exchange.apiKey == "test-key"
        assert client.exchange.secret == "test-secret"


class TestConnection:
    """Tests for connect/close delegation."""

    @pytest.mark.asyncio
    async def test_connect_loads_markets(self, client: CcxtMarketDataClient) -> None:
        client.exchange.load_markets = AsyncMock(return_value=MOCK_MARKETS)
        client.exchange.close = AsyncMock()

        await client.connect()

        client.exchange.load_markets.assert_awaited_once()
        await client.close()

    @pytest.mark.asyncio
    async def test_connect_failure_raises_market_data_error(
        self, client: CcxtMarketDataClient
    ) -> None:
        client.exchange.load_markets = AsyncMock(side_effect=ccxt_async.NetworkError("down"))
        client.exchange.close = AsyncMock()

        with pytest.raises(MarketDataError, match="Could not load markets"):
            await client.connect()
        await client.close()

    @pytest.mark.asyncio
    async def test_close_calls_exchange_close(self, client: CcxtMarketDataClient) -> None:
        client.exchange.close = AsyncMock()
        await client.close()
        client.exchange.close.assert_awaited_once()


class TestFetching:
    """Tests for OHLCV and ticker delegation."""

    @pytest.mark.asyncio
    async def test_fetch_ohlcv_delegates(self, client: CcxtMarketDataClient) -> None:
        rows = [[1_700_000_000_000, 1.0, 2.0, 0.5, 1.5, 10.0]]
        client.exchange.fetch_ohlcv = AsyncMock(return_value=rows)
        client.exchange.close = AsyncMock()

        result = await client.fetch_ohlcv("BTC/USDT", timeframe="1h", limit=168)

        assert result == rows
        client.exchange.fetch_ohlcv.assert_awaited_once_with(
            "BTC/USDT", timeframe="1h", since=None, limit=168
        )
        await client.close()

    @pytest.mark.asyncio
    async def test_last_price_is_decimal(self, client: CcxtMarketDataClient) -> None:
        client.exchange.fetch_ticker = AsyncMock(return_value={"last": 0.1, "close": 0.2})
        client.exchange.close = AsyncMock()

        price = await client.fetch_last_price("ETH/USDT")

        assert price == Decimal("0.1")
        await client.close()

    @pytest.mark.asyncio
    async def test_falls_back_to_close(self, client: CcxtMarketDataClient) -> None:
        client.exchange.fetch_ticker = AsyncMock(return_value={"last": None, "close": 2500.5})
        client.exchange.close = AsyncMock()

        assert await client.fetch_last_price("ETH/USDT") == Decimal("2500.5")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_price_is_none(self, client: CcxtMarketDataClient) -> None:
        client.exchange.fetch_ticker = AsyncMock(return_value={"last": None, "close": None})
        client.exchange.close = AsyncMock()

        assert await client.fetch_last_price("ETH/USDT") is None
        await client.close()
