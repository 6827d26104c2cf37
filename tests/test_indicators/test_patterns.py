"""Tests for bullish reversal candlestick patterns.

Values are Decimal so boundary comparisons are exact.
"""

from decimal import Decimal

from scanner.indicators.patterns import (
    has_reversal_signal,
    is_bullish_engulfing,
    is_doji,
    is_hammer,
)
from scanner.models import Candle


def candle(o: str, h: str, l: str, c: str) -> Candle:
    return Candle(open=Decimal(o), high=Decimal(h), low=Decimal(l), close=Decimal(c))


class TestHammer:
    def test_boundary_hammer(self) -> None:
        """Lower shadow 1.0 >= 2 * 0.1 and upper shadow 0.05 <= 0.5 * 0.1."""
        assert is_hammer(candle("10", "10.15", "9.0", "10.1")) is True

    def test_upper_shadow_too_long(self) -> None:
        assert is_hammer(candle("10", "10.2", "9.0", "10.1")) is False

    def test_lower_shadow_too_short(self) -> None:
        assert is_hammer(candle("10", "10.1", "9.9", "10.1")) is False

    def test_zero_range(self) -> None:
        assert is_hammer(candle("10", "10", "10", "10")) is False


class TestDoji:
    def test_doji(self) -> None:
        assert is_doji(candle("10", "11", "9", "10.05")) is True

    def test_large_body(self) -> None:
        assert is_doji(candle("10", "11", "9", "10.5")) is False

    def test_zero_range(self) -> None:
        assert is_doji(candle("10", "10", "10", "10")) is False


class TestBullishEngulfing:
    def test_engulfing(self) -> None:
        prev = candle("10", "10.2", "9.4", "9.5")
        curr = candle("9.4", "10.3", "9.3", "10.2")
        assert is_bullish_engulfing(prev, curr) is True

    def test_previous_not_bearish(self) -> None:
        prev = candle("9.5", "10.2", "9.4", "10")
        curr = candle("9.4", "10.3", "9.3", "10.2")
        assert is_bullish_engulfing(prev, curr) is False

    def test_does_not_engulf(self) -> None:
        prev = candle("10", "10.2", "9.4", "9.5")
        curr = candle("9.6", "10.0", "9.5", "9.9")
        assert is_bullish_engulfing(prev, curr) is False


class TestHasReversalSignal:
    def test_needs_two_candles(self) -> None:
        assert has_reversal_signal([candle("10", "10.15", "9.0", "10.1")]) is False
        assert has_reversal_signal([]) is False

    def test_hammer_on_last_candle(self) -> None:
        candles = [candle("11", "11.5", "10.5", "10.8"), candle("10", "10.15", "9.0", "10.1")]
        assert has_reversal_signal(candles) is True

    def test_only_last_candle_matters(self) -> None:
        candles = [
            candle("10", "10.15", "9.0", "10.1"),
            candle("10.1", "11.1", "10.0", "11.0"),
        ]
        assert has_reversal_signal(candles) is False
