"""Bullish RSI divergence between the last two local price lows.

A local low is an index i with close[i-1] > close[i] < close[i+1]. Divergence
holds when the later low is lower in price (by more than 0.1%) while RSI at
that low, computed only from history up to it, is higher by more than 1 point.
"""

from collections.abc import Sequence
from decimal import Decimal

from scanner.indicators.rsi import compute_rsi

#: Minimum relative price drop between the lows (0.1%).
_MIN_PRICE_DROP = Decimal("0.001")
#: Minimum RSI rise between the lows, in RSI points.
_MIN_RSI_RISE = 1.0


def find_last_two_lows(closes: Sequence[Decimal]) -> tuple[int, int] | None:
    """Return (previous, last) indices of the last two local lows, or None."""
    lows = [
        i
        for i in range(1, len(closes) - 1)
        if closes[i - 1] > closes[i] < closes[i + 1]
    ]
    if len(lows) < 2:
        return None
    return lows[-2], lows[-1]


def detect_bullish_divergence(closes: Sequence[Decimal], period: int = 14) -> bool:
    """Check a close series for bullish divergence.

    Args:
        closes: Closed-candle close prices, oldest first.
        period: RSI period.

    Returns:
        False when there is too little history (fewer than ``period + 5``
        closes, fewer than two lows, or a low without ``period + 1`` points
        of history before it).
    """
    if len(closes) < period + 5:
        return False

    lows = find_last_two_lows(closes)
    if lows is None:
        return False
    prev_idx, last_idx = lows

    prev_rsi = compute_rsi(closes[: prev_idx + 1], period)
    last_rsi = compute_rsi(closes[: last_idx + 1], period)
    if prev_rsi is None or last_rsi is None:
        return False

    prev_price = Decimal(str(closes[prev_idx]))
    last_price = Decimal(str(closes[last_idx]))
    if prev_price <= 0 or last_price >= prev_price:
        return False

    price_drop = (prev_price - last_price) / prev_price
    return price_drop > _MIN_PRICE_DROP and last_rsi - prev_rsi > _MIN_RSI_RISE
