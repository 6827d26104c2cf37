"""Composite single-signal score in [0, 100].

Three capped components, each weighted per timeframe class
(large / medium / small):

    rsi        = min(sum(weight(tf) * depth(rsi_tf)), rsi_max_score)
    divergence = min(sum(weight(tf)) + (n - 1) * bonus_per_extra, divergence_max_score)
    pattern    = min(sum(weight(tf)) + (bonus_multi if n > 1), pattern_max_score)
    total      = min(rsi + divergence + pattern, 100)

Depth multiplier for one RSI value (L1 < L2 < LH are the configured levels):

    rsi <= 50          -> 0
    50 < rsi < L1      -> (rsi - 50) / (L1 - 50)
    L1 <= rsi < L2     -> 1.0
    L2 <= rsi < LH     -> 1.2
    rsi >= LH          -> min(1.2 + ratio * delta, max_multiplier),
                          ratio = (rsi - LH) / (100 - LH), clipped to [0, 1]

All arithmetic is Decimal; results are quantized to 2 decimal places.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from scanner.config import ScoringSettings
from scanner.models import RsiMap, Timeframe, TimeframeClass, timeframe_class

_SCORE_QUANTIZE = Decimal("0.01")
_BASELINE = Decimal("50")
_HUNDRED = Decimal("100")
_ONE = Decimal("1")
_STEP_MULTIPLIER = Decimal("1.2")


@dataclass(frozen=True)
class SignalScore:
    """Composite score and its components."""

    total: Decimal
    rsi: Decimal
    divergence: Decimal
    pattern: Decimal


def rsi_depth_multiplier(rsi: Decimal, settings: ScoringSettings) -> Decimal:
    """Map an RSI value to its depth multiplier (see module docstring)."""
    if rsi <= _BASELINE:
        return Decimal("0")
    if rsi < settings.rsi_level_1:
        return min((rsi - _BASELINE) / max(_ONE, settings.rsi_level_1 - _BASELINE), _ONE)
    if rsi < settings.rsi_level_2:
        return _ONE
    if rsi < settings.rsi_level_high:
        return _STEP_MULTIPLIER

    high_range = max(_ONE, _HUNDRED - settings.rsi_level_high)
    ratio = min(rsi - settings.rsi_level_high, high_range) / high_range
    return min(_STEP_MULTIPLIER + ratio * settings.rsi_delta, settings.rsi_max_multiplier)


def _class_weights(settings: ScoringSettings, component: str) -> dict[TimeframeClass, Decimal]:
    return {
        TimeframeClass.LARGE: getattr(settings, f"{component}_weight_large"),
        TimeframeClass.MEDIUM: getattr(settings, f"{component}_weight_medium"),
        TimeframeClass.SMALL: getattr(settings, f"{component}_weight_small"),
    }


def compute_rsi_component(rsi_map: RsiMap, settings: ScoringSettings) -> Decimal:
    weights = _class_weights(settings, "rsi")
    score = Decimal("0")
    for timeframe, value in rsi_map.items():
        if value is None:
            continue
        multiplier = rsi_depth_multiplier(Decimal(str(value)), settings)
        score += weights[timeframe_class(timeframe)] * multiplier
    return min(score, settings.rsi_max_score)


def compute_divergence_component(
    timeframes: Iterable[Timeframe], settings: ScoringSettings
) -> Decimal:
    unique = set(timeframes)
    if not unique:
        return Decimal("0")
    weights = _class_weights(settings, "divergence")
    score = sum((weights[timeframe_class(tf)] for tf in unique), Decimal("0"))
    score += (len(unique) - 1) * settings.divergence_bonus_per_extra
    return min(score, settings.divergence_max_score)


def compute_pattern_component(
    timeframes: Iterable[Timeframe], settings: ScoringSettings
) -> Decimal:
    unique = set(timeframes)
    if not unique:
        return Decimal("0")
    weights = _class_weights(settings, "pattern")
    score = sum((weights[timeframe_class(tf)] for tf in unique), Decimal("0"))
    if len(unique) > 1:
        score += settings.pattern_bonus_multi
    return min(score, settings.pattern_max_score)


def compute_signal_score(
    rsi_map: RsiMap,
    divergence_timeframes: Iterable[Timeframe],
    pattern_timeframes: Iterable[Timeframe],
    settings: ScoringSettings,
) -> SignalScore:
    """Score a candidate signal.

    Args:
        rsi_map: Timeframe -> RSI for the instrument.
        divergence_timeframes: Timeframes showing bullish divergence.
        pattern_timeframes: Timeframes showing a reversal pattern.
        settings: Weights, levels and caps.

    Returns:
        SignalScore with total in [0, 100].
    """
    rsi_score = compute_rsi_component(rsi_map, settings)
    divergence_score = compute_divergence_component(divergence_timeframes, settings)
    pattern_score = compute_pattern_component(pattern_timeframes, settings)
    total = min(rsi_score + divergence_score + pattern_score, _HUNDRED)

    return SignalScore(
        total=total.quantize(_SCORE_QUANTIZE),
        rsi=rsi_score.quantize(_SCORE_QUANTIZE),
        divergence=divergence_score.quantize(_SCORE_QUANTIZE),
        pattern=pattern_score.quantize(_SCORE_QUANTIZE),
    )
