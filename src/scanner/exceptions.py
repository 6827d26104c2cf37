"""Custom exceptions for the momentum scanner.

Fetch, state and ranking errors live here so the exchange, storage and
ranking layers can share them without circular imports.
"""


class ScannerError(Exception):
    """Base exception for all scanner errors."""


class DataUnavailable(ScannerError):
    """Raised when a candle response is empty or malformed."""


class InsufficientHistory(DataUnavailable):
    """Raised when fewer candles are available than a computation requires."""


class TransientFetchError(ScannerError):
    """Raised on network/HTTP failures while fetching market data."""


class StateCorrupt(ScannerError):
    """Raised when persisted cycle state fails structural validation."""


class RankingError(ScannerError):
    """Raised when the ticker snapshot cannot be ranked (empty or not a list)."""
