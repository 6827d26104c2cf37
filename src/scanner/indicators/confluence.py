"""Multi-timeframe RSI confluence detection.

Confluence means at least ``min_timeframes`` timeframes share the same
extreme status. Oversold is checked before overbought, so a map that
qualifies for both reports oversold.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from scanner.indicators.rsi import RsiThresholds, count_by_status, timeframes_with_status
from scanner.models import (
    ESCALATION_TIMEFRAMES,
    ConfluenceResult,
    InstrumentSnapshot,
    RsiMap,
    RsiStatus,
)


def detect_confluence(
    rsi_map: RsiMap, thresholds: RsiThresholds, min_timeframes: int = 2
) -> ConfluenceResult:
    """Find the dominant extreme status of an RSI map.

    Args:
        rsi_map: Timeframe -> RSI (None entries count as neutral).
        thresholds: Status boundaries.
        min_timeframes: Minimum timeframes sharing a status.

    Returns:
        ConfluenceResult; ``ConfluenceResult.none()`` when neither extreme
        reaches the minimum.
    """
    for status in (RsiStatus.OVERSOLD, RsiStatus.OVERBOUGHT):
        matched = timeframes_with_status(rsi_map, status, thresholds)
        if len(matched) >= min_timeframes:
            return ConfluenceResult(
                has_confluence=True,
                status=status,
                timeframes=tuple(matched),
                count=len(matched),
            )
    return ConfluenceResult.none()


@dataclass(frozen=True)
class ConfluenceIncrease:
    """An instrument whose confluence grew since the previous cycle."""

    snapshot: InstrumentSnapshot
    previous_count: int
    current_count: int


def detect_confluence_increases(
    current: Iterable[InstrumentSnapshot],
    previous: Iterable[InstrumentSnapshot],
    thresholds: RsiThresholds,
) -> list[ConfluenceIncrease]:
    """Compare confluence counts across cycles, matched by base symbol.

    The previous count is the raw count of the *current* dominant status in
    the previous RSI map, regardless of what that cycle's dominant status
    was. Growth is reported only when the current confluence includes one of
    4h, 8h or 1d.
    """
    previous_by_base = {s.base_symbol: s for s in previous}
    increases: list[ConfluenceIncrease] = []

    for snapshot in current:
        confluence = snapshot.confluence
        if not confluence.has_confluence:
            continue
        prev = previous_by_base.get(snapshot.base_symbol)
        if prev is None:
            continue
        if not ESCALATION_TIMEFRAMES.intersection(confluence.timeframes):
            continue

        prev_count = count_by_status(prev.rsi, thresholds)[confluence.status]
        if confluence.count > prev_count:
            increases.append(
                ConfluenceIncrease(
                    snapshot=snapshot,
                    previous_count=prev_count,
                    current_count=confluence.count,
                )
            )

    return increases
