"""Relative Strength Index with Wilder smoothing, plus status classification.

Given closes c_0..c_n (oldest first) and a period P:
    d_i = c_i - c_{i-1}
    gain_i = max(d_i, 0), loss_i = max(-d_i, 0)
    avg_gain = mean(gain_1..gain_P), avg_loss = mean(loss_1..loss_P)
    for each later i: avg = (avg * (P - 1) + x_i) / P
    RSI = 100 - 100 / (1 + avg_gain / avg_loss)

RSI is returned as a full-precision float; ``round_rsi`` is for display only.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from scanner.config import RsiSettings
from scanner.models import MINUTE_SCALE_TIMEFRAMES, RsiMap, RsiStatus, Timeframe


def compute_rsi(closes: Sequence[Decimal | float], period: int = 14) -> float | None:
    """Compute Wilder-smoothed RSI over the full series.

    A series with no losses returns 100 if it had any gain and 50 if it was
    completely flat.

    Args:
        closes: Close prices, oldest first.
        period: RSI period.

    Returns:
        RSI in [0, 100], or None when fewer than ``period + 1`` closes are given.
    """
    if period < 1 or len(closes) < period + 1:
        return None

    values = [float(c) for c in closes]
    gains: list[float] = []
    losses: list[float] = []
    for prev, curr in zip(values, values[1:]):
        diff = curr - prev
        gains.append(diff if diff > 0 else 0.0)
        losses.append(-diff if diff < 0 else 0.0)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0

    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def round_rsi(value: float | None) -> float | None:
    """Round an RSI value to 2 decimals for display."""
    return None if value is None else round(value, 2)


@dataclass(frozen=True)
class RsiThresholds:
    """Status boundaries. Overbought depends on the timeframe scale."""

    oversold: float = 30.0
    overbought_large: float = 70.0
    overbought_small: float = 70.0
    super_overbought: float = 90.0

    @classmethod
    def from_settings(cls, settings: RsiSettings) -> "RsiThresholds":
        return cls(
            oversold=settings.oversold_threshold,
            overbought_large=settings.overbought_threshold,
            overbought_small=settings.overbought_threshold_small,
            super_overbought=settings.super_overbought_threshold,
        )

    def overbought_for(self, timeframe: Timeframe) -> float:
        if timeframe in MINUTE_SCALE_TIMEFRAMES:
            return self.overbought_small
        return self.overbought_large


def classify_rsi(
    value: float | None, timeframe: Timeframe, thresholds: RsiThresholds
) -> RsiStatus:
    """Classify one RSI value. Missing values are neutral."""
    if value is None:
        return RsiStatus.NEUTRAL
    if value < thresholds.oversold:
        return RsiStatus.OVERSOLD
    if value > thresholds.overbought_for(timeframe):
        return RsiStatus.OVERBOUGHT
    return RsiStatus.NEUTRAL


def count_by_status(rsi_map: RsiMap, thresholds: RsiThresholds) -> dict[RsiStatus, int]:
    counts = {status: 0 for status in RsiStatus}
    for timeframe, value in rsi_map.items():
        counts[classify_rsi(value, timeframe, thresholds)] += 1
    return counts


def timeframes_with_status(
    rsi_map: RsiMap,
    status: RsiStatus,
    thresholds: RsiThresholds,
    only: Sequence[Timeframe] | None = None,
) -> list[Timeframe]:
    """Timeframes whose RSI has ``status``, in map order.

    ``only`` restricts the check to a subset of timeframes.
    """
    return [
        tf
        for tf, value in rsi_map.items()
        if (only is None or tf in only) and classify_rsi(value, tf, thresholds) is status
    ]


def sum_rsi_by_status(rsi_map: RsiMap, status: RsiStatus, thresholds: RsiThresholds) -> float:
    return sum(
        (
            value
            for tf, value in rsi_map.items()
            if value is not None and classify_rsi(value, tf, thresholds) is status
        ),
        0.0,
    )


def count_super_overbought(rsi_map: RsiMap, thresholds: RsiThresholds) -> int:
    return sum(
        1 for value in rsi_map.values() if value is not None and value > thresholds.super_overbought
    )
