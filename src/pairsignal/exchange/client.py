"""Abstract market data client interface.

Defines the contract for all exchange implementations. The fetch layer
depends only on this interface, keeping ccxt-specific details isolated in
the concrete implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class MarketDataClient(ABC):
    """Abstract base class for read-only exchange market data clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str,
        limit: int,
        since: int | None = None,
    ) -> list[list]:
        """Fetch OHLCV rows ``[timestamp_ms, open, high, low, close, volume]``."""
        ...

    @abstractmethod
    async def fetch_last_price(self, symbol: str) -> Decimal | None:
        """Fetch the latest traded price, or None if the ticker has none."""
        ...
