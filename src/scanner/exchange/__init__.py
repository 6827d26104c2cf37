"""Market data layer -- futures tickers and candles via ccxt."""

from scanner.exchange.ccxt_client import CcxtMarketDataClient
from scanner.exchange.client import MarketDataClient
from scanner.exchange.pacer import RequestPacer

__all__ = ["CcxtMarketDataClient", "MarketDataClient", "RequestPacer"]
