"""Futures market data client via ccxt async.

Wraps a ccxt.async_support exchange (MEXC perpetual swaps by default) with
market loading, ticker normalization and candle fetching. ccxt errors are
translated into the scanner's fetch exceptions.
"""

from decimal import Decimal, InvalidOperation

import ccxt
import ccxt.async_support as ccxt_async

from scanner.config import ExchangeSettings
from scanner.exceptions import DataUnavailable, TransientFetchError
from scanner.exchange.client import MarketDataClient
from scanner.logging import get_logger
from scanner.models import Candle, CandleSeries, TickerSnapshot, Timeframe

logger = get_logger(__name__)


def _decimal_or_none(value: object) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_ticker(symbol: str, ticker: dict) -> TickerSnapshot:
    """Normalize a ccxt ticker into a TickerSnapshot.

    Momentum prefers the exchange-native fractional rate (MEXC
    ``riseFallRate``), falling back to ccxt's ``percentage / 100``. Volume
    prefers the native 24h volume, falling back to ``quoteVolume``.
    """
    info = ticker.get("info") or {}

    momentum = _decimal_or_none(info.get("riseFallRate"))
    if momentum is None:
        percentage = _decimal_or_none(ticker.get("percentage"))
        momentum = percentage / Decimal("100") if percentage is not None else None

    volume = _decimal_or_none(info.get("volume24"))
    if volume is None:
        volume = _decimal_or_none(ticker.get("quoteVolume"))

    return TickerSnapshot(
        symbol=symbol,
        momentum_rate=momentum,
        volume_24h=volume if volume is not None else Decimal("0"),
        last_price=_decimal_or_none(ticker.get("last")),
        high_24h=_decimal_or_none(ticker.get("high")),
        low_24h=_decimal_or_none(ticker.get("low")),
        funding_rate=_decimal_or_none(info.get("fundingRate")),
    )


def parse_ohlcv(symbol: str, timeframe: Timeframe, rows: list) -> CandleSeries:
    """Convert ccxt OHLCV rows ``[ts, open, high, low, close, volume]``.

    Raises:
        DataUnavailable: if the rows are empty or malformed.
    """
    if not rows:
        raise DataUnavailable(f"No candles for {symbol} {timeframe.value}")
    try:
        candles = tuple(
            Candle(
                open=Decimal(str(row[1])),
                high=Decimal(str(row[2])),
                low=Decimal(str(row[3])),
                close=Decimal(str(row[4])),
            )
            for row in rows
        )
    except (IndexError, TypeError, InvalidOperation) as e:
        raise DataUnavailable(f"Malformed candles for {symbol} {timeframe.value}: {e}") from e
    return CandleSeries(symbol=symbol, timeframe=timeframe, candles=candles)


class CcxtMarketDataClient(MarketDataClient):
    """Concrete market data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        config: dict = {
            "enableRateLimit": True,
            "timeout": settings.request_timeout_ms,
            "options": {
                "defaultType": settings.market_type,
            },
        }
        api_key = settings.api_key.get_secret_value()
        if api_key:
            config["apiKey"] = api_key
            config["secret"] = settings.api_secret.get_secret_value()

        exchange_class = getattr(ccxt_async, settings.exchange_id)
        self._exchange = exchange_class(config)
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_exchange", exchange=self._settings.exchange_id)
        try:
            self._markets = await self._exchange.load_markets()
        except ccxt.BaseError as e:
            raise TransientFetchError(f"load_markets failed: {e}") from e
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_exchange_connection")
        await self._exchange.close()
        logger.info("exchange_connection_closed")

    def _is_perpetual(self, symbol: str) -> bool:
        if not self._markets:
            return True
        market = self._markets.get(symbol)
        return bool(market and market.get("swap") and market.get("linear"))

    async def fetch_tickers(self) -> list[TickerSnapshot]:
        """Fetch and normalize tickers for all linear perpetual contracts."""
        try:
            raw = await self._exchange.fetch_tickers()
        except ccxt.BaseError as e:
            raise TransientFetchError(f"fetch_tickers failed: {e}") from e

        tickers = [
            parse_ticker(symbol, ticker)
            for symbol, ticker in raw.items()
            if self._is_perpetual(symbol)
        ]
        logger.debug("fetched_tickers", count=len(tickers))
        return tickers

    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, count: int
    ) -> CandleSeries:
        """Fetch the most recent ``count`` candles for a symbol."""
        try:
            rows = await self._exchange.fetch_ohlcv(symbol, timeframe.value, limit=count)
        except ccxt.BadSymbol as e:
            raise DataUnavailable(f"Unknown symbol {symbol}: {e}") from e
        except ccxt.BaseError as e:
            # NetworkError, ExchangeError and OperationFailed (BadResponse, NullResponse)
            raise TransientFetchError(
                f"fetch_ohlcv failed for {symbol} {timeframe.value}: {e}"
            ) from e

        return parse_ohlcv(symbol, timeframe, rows)
