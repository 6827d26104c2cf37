"""Bullish reversal candlestick patterns.

All checks run on closed candles in Decimal, so boundary cases compare
exactly:
    body         = |close - open|
    range        = high - low
    lower shadow = min(open, close) - low
    upper shadow = high - max(open, close)

A zero-range candle is never a hammer or a doji.
"""

from collections.abc import Sequence
from decimal import Decimal

from scanner.models import Candle

_HAMMER_LOWER_RATIO = Decimal("2")
_HAMMER_UPPER_RATIO = Decimal("0.5")
_DOJI_BODY_RATIO = Decimal("0.05")


def is_hammer(candle: Candle) -> bool:
    """Long lower shadow (>= 2x body) with a small upper shadow (<= 0.5x body)."""
    candle_range = candle.high - candle.low
    if candle_range == 0:
        return False
    body = abs(candle.close - candle.open)
    lower_shadow = min(candle.open, candle.close) - candle.low
    upper_shadow = candle.high - max(candle.open, candle.close)
    return lower_shadow >= _HAMMER_LOWER_RATIO * body and upper_shadow <= _HAMMER_UPPER_RATIO * body


def is_doji(candle: Candle) -> bool:
    """Body no larger than 5% of the range."""
    candle_range = candle.high - candle.low
    if candle_range == 0:
        return False
    return abs(candle.close - candle.open) <= _DOJI_BODY_RATIO * candle_range


def is_bullish_engulfing(prev: Candle, curr: Candle) -> bool:
    """Bearish candle followed by a bullish candle whose body engulfs it."""
    return (
        prev.close < prev.open
        and curr.close > curr.open
        and curr.open < prev.close
        and curr.close > prev.open
    )


def has_reversal_signal(candles: Sequence[Candle]) -> bool:
    """Check the last closed candle (and its predecessor) for a reversal.

    Args:
        candles: Closed candles, oldest first. The in-progress candle must
            already be removed.

    Returns:
        True if the last candle is a hammer or doji, or the last two form a
        bullish engulfing pattern. False for fewer than two candles.
    """
    if len(candles) < 2:
        return False
    last = candles[-1]
    return is_hammer(last) or is_doji(last) or is_bullish_engulfing(candles[-2], last)
