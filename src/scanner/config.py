"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Market data exchange connection settings (ccxt)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: str = "mexc"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    market_type: str = "swap"
    request_timeout_ms: int = 15000


class RsiSettings(BaseSettings):
    """RSI computation and status classification parameters."""

    model_config = SettingsConfigDict(env_prefix="RSI_")

    period: int = 14
    timeframes: list[str] = ["15m", "30m", "1h", "4h"]
    oversold_threshold: float = 30.0
    overbought_threshold: float = 70.0  # hour/day-scale timeframes
    overbought_threshold_small: float = 70.0  # minute-scale timeframes
    super_overbought_threshold: float = 90.0
    confluence_min_timeframes: int = 2
    candle_margin: int = 50  # extra candles fetched beyond the period


class ScanSettings(BaseSettings):
    """Ranking, whitelist and alerting behaviour for each scan cycle."""

    model_config = SettingsConfigDict(env_prefix="SCAN_")

    modes: list[Literal["pump", "drop"]] = ["pump"]
    top_n: int = 10
    whitelist_capacity: int = 2
    interval_seconds: int = 60
    signal_timeframes: list[str] = ["5m", "15m", "30m", "1h"]
    pattern_candle_count: int = 10
    signal_min_rsi_count: int = 1

    # Quiet hours: alerts are flagged silent between start and end (local hour)
    quiet_hours_start: int = 23
    quiet_hours_end: int = 1
    quiet_hours_utc_offset: int = 7


class FetchSettings(BaseSettings):
    """Request pacing for candle fetches."""

    model_config = SettingsConfigDict(env_prefix="FETCH_")

    max_concurrent_timeframes: int = 5
    request_delay: float = 0.1  # seconds between request starts
    delay_between_instruments: float = 0.2


class ScoringSettings(BaseSettings):
    """Single-signal composite score weights and thresholds.

    Weights are given per timeframe class (large/medium/small) for each of the
    three components. All fields configurable via SCORE_ environment prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SCORE_")

    # RSI depth component
    rsi_weight_large: Decimal = Decimal("12")
    rsi_weight_medium: Decimal = Decimal("8")
    rsi_weight_small: Decimal = Decimal("5")
    rsi_max_score: Decimal = Decimal("40")
    rsi_level_1: Decimal = Decimal("70")  # multiplier reaches 1.0
    rsi_level_2: Decimal = Decimal("80")  # multiplier jumps to 1.2
    rsi_level_high: Decimal = Decimal("90")  # ramp toward max multiplier
    rsi_delta: Decimal = Decimal("0.3")
    rsi_max_multiplier: Decimal = Decimal("1.5")

    # Divergence component
    divergence_weight_large: Decimal = Decimal("15")
    divergence_weight_medium: Decimal = Decimal("10")
    divergence_weight_small: Decimal = Decimal("6")
    divergence_bonus_per_extra: Decimal = Decimal("5")
    divergence_max_score: Decimal = Decimal("30")

    # Candlestick pattern component
    pattern_weight_large: Decimal = Decimal("12")
    pattern_weight_medium: Decimal = Decimal("8")
    pattern_weight_small: Decimal = Decimal("5")
    pattern_bonus_multi: Decimal = Decimal("5")
    pattern_max_score: Decimal = Decimal("30")


class StorageSettings(BaseSettings):
    """Cycle state persistence location."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    db_path: str = "data/scanner.db"


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    rsi: RsiSettings = RsiSettings()
    scan: ScanSettings = ScanSettings()
    fetch: FetchSettings = FetchSettings()
    scoring: ScoringSettings = ScoringSettings()
    storage: StorageSettings = StorageSettings()
