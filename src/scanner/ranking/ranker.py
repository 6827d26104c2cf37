"""Momentum ranking of the ticker snapshot.

Initial pass (pure, stateless):
  1. Keep rows with positive 24h volume and a finite momentum rate
  2. Collapse rows sharing a base symbol to the extreme rate
     (max for pump, min for drop)
  3. Sort descending (pump) or ascending (drop), take the top N, rank 1..N

Second pass after RSI enrichment re-sorts the top N by the number of
timeframes in the mode's relevant RSI status, then by the RSI sum over
those timeframes.
"""

from dataclasses import replace
from decimal import Decimal

from scanner.exceptions import RankingError
from scanner.indicators.rsi import RsiThresholds, sum_rsi_by_status, timeframes_with_status
from scanner.models import (
    BaseSymbol,
    InstrumentSnapshot,
    RankedInstrument,
    ScanMode,
    TickerSnapshot,
    get_base_symbol,
)

_MOMENTUM_QUANTIZE = Decimal("0.0001")
_FUNDING_QUANTIZE = Decimal("0.000001")


def _is_rankable(ticker: TickerSnapshot) -> bool:
    volume = ticker.volume_24h
    if not isinstance(volume, Decimal) or not volume.is_finite() or volume <= 0:
        return False
    rate = ticker.momentum_rate
    return isinstance(rate, Decimal) and rate.is_finite()


def rank_instruments(
    tickers: list[TickerSnapshot], mode: ScanMode, top_n: int
) -> list[RankedInstrument]:
    """Select the top-N instruments by momentum.

    Args:
        tickers: Full ticker snapshot.
        mode: PUMP ranks the biggest risers, DROP the biggest fallers.
        top_n: Number of instruments to keep.

    Returns:
        Up to ``top_n`` RankedInstrument with ranks 1..N. Empty when no row
        passes the volume/momentum filter.

    Raises:
        RankingError: if ``tickers`` is not a list or is empty.
    """
    if not isinstance(tickers, list):
        raise RankingError(f"Ticker snapshot must be a list, got {type(tickers).__name__}")
    if not tickers:
        raise RankingError("Ticker snapshot is empty")

    pump = mode is ScanMode.PUMP
    best: dict[BaseSymbol, TickerSnapshot] = {}
    for ticker in tickers:
        if not _is_rankable(ticker):
            continue
        base = get_base_symbol(ticker.symbol)
        current = best.get(base)
        if current is None:
            best[base] = ticker
        elif pump and ticker.momentum_rate > current.momentum_rate:
            best[base] = ticker
        elif not pump and ticker.momentum_rate < current.momentum_rate:
            best[base] = ticker

    ordered = sorted(best.values(), key=lambda t: t.momentum_rate, reverse=pump)

    return [
        RankedInstrument(
            rank=rank,
            symbol=ticker.symbol,
            base_symbol=get_base_symbol(ticker.symbol),
            momentum_rate=ticker.momentum_rate.quantize(_MOMENTUM_QUANTIZE),
            volume_24h=ticker.volume_24h,
            funding_rate=(ticker.funding_rate or Decimal("0")).quantize(_FUNDING_QUANTIZE),
            last_price=ticker.last_price,
            high_24h=ticker.high_24h,
            low_24h=ticker.low_24h,
        )
        for rank, ticker in enumerate(ordered[: max(0, top_n)], start=1)
    ]


def rerank_by_rsi(
    snapshots: list[InstrumentSnapshot], mode: ScanMode, thresholds: RsiThresholds
) -> list[InstrumentSnapshot]:
    """Re-sort enriched snapshots by RSI extremity and reassign ranks.

    Primary key: number of timeframes in the relevant status (overbought for
    pump, oversold for drop), descending. Secondary key: sum of those RSI
    values, descending for pump and ascending for drop. Ties keep their
    momentum order.
    """
    status = mode.relevant_status
    sign = -1 if mode is ScanMode.PUMP else 1

    def sort_key(snapshot: InstrumentSnapshot) -> tuple[int, float]:
        count = len(timeframes_with_status(snapshot.rsi, status, thresholds))
        total = sum_rsi_by_status(snapshot.rsi, status, thresholds)
        return -count, sign * total

    ordered = sorted(snapshots, key=sort_key)
    return [replace(snapshot, rank=rank) for rank, snapshot in enumerate(ordered, start=1)]
