"""Abstract market data client interface.

The scan pipeline depends only on this interface, keeping exchange-specific
ticker and candle formats isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod

from scanner.models import CandleSeries, TickerSnapshot, Timeframe


class MarketDataClient(ABC):
    """Abstract base class for futures market data sources."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_tickers(self) -> list[TickerSnapshot]:
        """Fetch the full ticker snapshot for all perpetual contracts.

        Raises:
            TransientFetchError: on network or exchange failure.
        """
        ...

    @abstractmethod
    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, count: int
    ) -> CandleSeries:
        """Fetch up to ``count`` most recent candles, oldest first.

        The last candle may still be in progress.

        Raises:
            DataUnavailable: if the response is empty or malformed.
            TransientFetchError: on network or exchange failure.
        """
        ...
