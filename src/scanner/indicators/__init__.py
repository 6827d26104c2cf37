"""Pure indicator functions: RSI, confluence, candlestick patterns and divergence."""

from scanner.indicators.confluence import (
    ConfluenceIncrease,
    detect_confluence,
    detect_confluence_increases,
)
from scanner.indicators.divergence import detect_bullish_divergence, find_last_two_lows
from scanner.indicators.patterns import (
    has_reversal_signal,
    is_bullish_engulfing,
    is_doji,
    is_hammer,
)
from scanner.indicators.rsi import (
    RsiThresholds,
    classify_rsi,
    compute_rsi,
    count_by_status,
    count_super_overbought,
    round_rsi,
    sum_rsi_by_status,
    timeframes_with_status,
)

__all__ = [
    "ConfluenceIncrease",
    "RsiThresholds",
    "classify_rsi",
    "compute_rsi",
    "count_by_status",
    "count_super_overbought",
    "detect_bullish_divergence",
    "detect_confluence",
    "detect_confluence_increases",
    "find_last_two_lows",
    "has_reversal_signal",
    "is_bullish_engulfing",
    "is_doji",
    "is_hammer",
    "round_rsi",
    "sum_rsi_by_status",
    "timeframes_with_status",
]
