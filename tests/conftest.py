"""Shared test fixtures for the futures momentum scanner."""

from collections.abc import Callable
from decimal import Decimal

import pytest

from scanner.config import (
    AppSettings,
    ExchangeSettings,
    FetchSettings,
    RsiSettings,
    ScanSettings,
    ScoringSettings,
    StorageSettings,
)
from scanner.indicators.confluence import detect_confluence
from scanner.indicators.rsi import RsiThresholds
from scanner.models import (
    Candle,
    CandleSeries,
    InstrumentSnapshot,
    RsiMap,
    Timeframe,
    get_base_symbol,
)


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (no delays, temp database)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(exchange_id="mexc"),
        rsi=RsiSettings(
            period=14,
            timeframes=["5m", "15m", "1h", "4h"],
            oversold_threshold=30.0,
            overbought_threshold=70.0,
            overbought_threshold_small=70.0,
        ),
        scan=ScanSettings(
            modes=["pump"],
            top_n=3,
            whitelist_capacity=2,
            signal_timeframes=["5m", "15m"],
            quiet_hours_start=0,
            quiet_hours_end=0,
        ),
        fetch=FetchSettings(
            max_concurrent_timeframes=2,
            request_delay=0.0,
            delay_between_instruments=0.0,
        ),
        scoring=ScoringSettings(),
        storage=StorageSettings(db_path=str(tmp_path / "scanner.db")),
    )


@pytest.fixture
def thresholds() -> RsiThresholds:
    """Default thresholds: oversold < 30, overbought > 70 on every scale."""
    return RsiThresholds()


@pytest.fixture
def make_snapshot(thresholds: RsiThresholds) -> Callable[..., InstrumentSnapshot]:
    """Factory building an InstrumentSnapshot with confluence derived from ``rsi``."""

    def _make(
        symbol: str,
        rsi: dict[str, float | None] | None = None,
        rank: int = 1,
        momentum: str = "0.1",
    ) -> InstrumentSnapshot:
        rsi_map: RsiMap = {Timeframe.parse(tf): v for tf, v in (rsi or {}).items()}
        return InstrumentSnapshot(
            symbol=symbol,
            base_symbol=get_base_symbol(symbol),
            rank=rank,
            momentum_rate=Decimal(momentum),
            rsi=rsi_map,
            confluence=detect_confluence(rsi_map, thresholds, 2),
            funding_rate=Decimal("0.0001"),
            volume_24h=Decimal("1000000"),
        )

    return _make


def candles_from_closes(closes: list[float | str]) -> tuple[Candle, ...]:
    """Flat-bodied candles whose open equals the previous close."""
    candles = []
    prev = Decimal(str(closes[0]))
    for value in closes:
        close = Decimal(str(value))
        candles.append(
            Candle(
                open=prev,
                high=max(prev, close) + Decimal("0.5"),
                low=min(prev, close) - Decimal("0.5"),
                close=close,
            )
        )
        prev = close
    return tuple(candles)


@pytest.fixture
def make_series() -> Callable[..., CandleSeries]:
    """Factory building a CandleSeries from a list of closes."""

    def _make(symbol: str, timeframe: Timeframe, closes: list[float | str]) -> CandleSeries:
        return CandleSeries(symbol=symbol, timeframe=timeframe, candles=candles_from_closes(closes))

    return _make
