"""Per-instrument indicator evaluation over the market data client.

The SignalEvaluator fetches candles through the shared RequestPacer and
turns them into:
1. A multi-timeframe RSI map (batched, ordered by timeframe)
2. RSI confluence
3. Reversal-pattern and bullish-divergence timeframes
4. The composite signal score

RSI uses every candle including the in-progress one. Patterns and divergence
only look at closed candles.

Fetch failures degrade gracefully: a timeframe with no usable data is None
in the RSI map, and pattern/divergence scans treat a failed fetch as "no
signal" on that timeframe.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scanner.exceptions import DataUnavailable, InsufficientHistory
from scanner.indicators.confluence import detect_confluence
from scanner.indicators.divergence import detect_bullish_divergence
from scanner.indicators.patterns import has_reversal_signal
from scanner.indicators.rsi import (
    RsiThresholds,
    compute_rsi,
    count_super_overbought,
    round_rsi,
    timeframes_with_status,
)
from scanner.logging import get_logger
from scanner.models import (
    CandleSeries,
    ConfluenceResult,
    InstrumentSnapshot,
    RankedInstrument,
    RsiMap,
    ScanMode,
    Timeframe,
    sort_timeframes,
)
from scanner.signals.scoring import SignalScore, compute_signal_score

if TYPE_CHECKING:
    from scanner.config import FetchSettings, RsiSettings, ScanSettings, ScoringSettings
    from scanner.exchange.client import MarketDataClient
    from scanner.exchange.pacer import RequestPacer

logger = get_logger(__name__)


@dataclass(frozen=True)
class InstrumentEvaluation:
    """Indicators computed for one ranked instrument in one cycle."""

    snapshot: InstrumentSnapshot
    pattern_timeframes: tuple[Timeframe, ...] = ()
    divergence_timeframes: tuple[Timeframe, ...] = ()
    score: SignalScore | None = None

    @classmethod
    def empty(cls, ranked: RankedInstrument) -> InstrumentEvaluation:
        """Degraded evaluation: no RSI data, no signals."""
        return cls(
            snapshot=InstrumentSnapshot.from_ranked(ranked, {}, ConfluenceResult.none()),
        )


class SignalEvaluator:
    """Computes RSI, confluence, patterns, divergence and score per instrument.

    Args:
        client: Market data source for candles.
        pacer: Shared request pacer bounding concurrent candle fetches.
        rsi_settings: RSI period, timeframes and thresholds.
        fetch_settings: Batch size for concurrent timeframe fetches.
        scan_settings: Signal timeframes and pattern candle count.
        scoring_settings: Composite score weights.
    """

    def __init__(
        self,
        client: MarketDataClient,
        pacer: RequestPacer,
        rsi_settings: RsiSettings,
        fetch_settings: FetchSettings,
        scan_settings: ScanSettings,
        scoring_settings: ScoringSettings,
    ) -> None:
        self._client = client
        self._pacer = pacer
        self._rsi_settings = rsi_settings
        self._fetch_settings = fetch_settings
        self._scan_settings = scan_settings
        self._scoring_settings = scoring_settings
        self._thresholds = RsiThresholds.from_settings(rsi_settings)
        self._timeframes = sort_timeframes(rsi_settings.timeframes)
        self._signal_timeframes = sort_timeframes(scan_settings.signal_timeframes)

    @property
    def thresholds(self) -> RsiThresholds:
        return self._thresholds

    @property
    def timeframes(self) -> list[Timeframe]:
        return list(self._timeframes)

    @property
    def _history_count(self) -> int:
        return self._rsi_settings.period + self._rsi_settings.candle_margin

    async def _fetch(self, symbol: str, timeframe: Timeframe, count: int) -> CandleSeries:
        async with self._pacer.slot():
            return await self._client.fetch_candles(symbol, timeframe, count)

    async def _rsi_for(self, symbol: str, timeframe: Timeframe) -> float:
        series = await self._fetch(symbol, timeframe, self._history_count)
        value = compute_rsi(series.closes(), self._rsi_settings.period)
        if value is None:
            raise InsufficientHistory(
                f"{symbol} {timeframe.value}: {len(series)} candles, "
                f"need {self._rsi_settings.period + 1}"
            )
        return value

    # ──────────────────────────────────────────────────────────────────
    # RSI map
    # ──────────────────────────────────────────────────────────────────

    async def compute_rsi_map(self, symbol: str) -> RsiMap:
        """Compute RSI for every configured timeframe, smallest first.

        Timeframes are fetched in batches of ``max_concurrent_timeframes``.
        When a timeframe has no data or too little history, it and every
        larger timeframe are left as None (a listing too young for 1h has
        no 4h either). Any other fetch error only nulls that timeframe.

        Returns:
            RsiMap with one key per configured timeframe, in timeframe order.
        """
        rsi_map: RsiMap = {tf: None for tf in self._timeframes}
        batch_size = max(1, self._fetch_settings.max_concurrent_timeframes)

        for start in range(0, len(self._timeframes), batch_size):
            batch = self._timeframes[start : start + batch_size]
            results = await asyncio.gather(
                *(self._rsi_for(symbol, tf) for tf in batch),
                return_exceptions=True,
            )

            cutoff: Timeframe | None = None
            for timeframe, result in zip(batch, results):
                if isinstance(result, DataUnavailable):
                    logger.debug(
                        "rsi_timeframe_unavailable",
                        symbol=symbol,
                        timeframe=timeframe.value,
                        error=str(result),
                    )
                    cutoff = timeframe
                    break
                if isinstance(result, Exception):
                    logger.warning(
                        "rsi_fetch_failed",
                        symbol=symbol,
                        timeframe=timeframe.value,
                        error=str(result),
                    )
                    continue
                if isinstance(result, BaseException):
                    raise result
                rsi_map[timeframe] = result

            if cutoff is not None:
                logger.debug(
                    "rsi_larger_timeframes_skipped",
                    symbol=symbol,
                    from_timeframe=cutoff.value,
                )
                break

        return rsi_map

    # ──────────────────────────────────────────────────────────────────
    # Patterns and divergence
    # ──────────────────────────────────────────────────────────────────

    async def _has_pattern(self, symbol: str, timeframe: Timeframe) -> bool:
        try:
            series = await self._fetch(symbol, timeframe, self._scan_settings.pattern_candle_count)
        except Exception as e:
            logger.debug("pattern_fetch_failed", symbol=symbol, timeframe=timeframe.value, error=str(e))
            return False
        return has_reversal_signal(series.closed().candles)

    async def _has_divergence(self, symbol: str, timeframe: Timeframe) -> bool:
        try:
            series = await self._fetch(symbol, timeframe, self._history_count)
        except Exception as e:
            logger.debug(
                "divergence_fetch_failed", symbol=symbol, timeframe=timeframe.value, error=str(e)
            )
            return False
        return detect_bullish_divergence(series.closed().closes(), self._rsi_settings.period)

    async def pattern_timeframes(
        self, symbol: str, timeframes: Iterable[Timeframe] | None = None
    ) -> list[Timeframe]:
        """Timeframes whose last closed candle shows a bullish reversal."""
        tfs = sort_timeframes(timeframes) if timeframes is not None else self._signal_timeframes
        results = await asyncio.gather(*(self._has_pattern(symbol, tf) for tf in tfs))
        return [tf for tf, found in zip(tfs, results) if found]

    async def divergence_timeframes(
        self, symbol: str, timeframes: Iterable[Timeframe] | None = None
    ) -> list[Timeframe]:
        """Timeframes showing bullish RSI divergence on closed candles."""
        tfs = sort_timeframes(timeframes) if timeframes is not None else self._signal_timeframes
        results = await asyncio.gather(*(self._has_divergence(symbol, tf) for tf in tfs))
        return [tf for tf, found in zip(tfs, results) if found]

    # ──────────────────────────────────────────────────────────────────
    # Full evaluation
    # ──────────────────────────────────────────────────────────────────

    async def evaluate(self, ranked: RankedInstrument, mode: ScanMode) -> InstrumentEvaluation:
        """Evaluate one ranked instrument.

        Pattern and divergence scans only run when at least one timeframe is
        in the mode's relevant RSI status.
        """
        symbol = ranked.symbol
        rsi_map = await self.compute_rsi_map(symbol)
        confluence = detect_confluence(
            rsi_map, self._thresholds, self._rsi_settings.confluence_min_timeframes
        )
        snapshot = InstrumentSnapshot.from_ranked(ranked, rsi_map, confluence)

        patterns: list[Timeframe] = []
        divergences: list[Timeframe] = []
        if timeframes_with_status(rsi_map, mode.relevant_status, self._thresholds):
            patterns, divergences = await asyncio.gather(
                self.pattern_timeframes(symbol),
                self.divergence_timeframes(symbol),
            )

        score = compute_signal_score(rsi_map, divergences, patterns, self._scoring_settings)

        logger.info(
            "instrument_evaluated",
            symbol=symbol,
            rank=ranked.rank,
            rsi={tf.value: round_rsi(v) for tf, v in rsi_map.items()},
            confluence=confluence.status.value if confluence.has_confluence else None,
            confluence_count=confluence.count,
            super_overbought=count_super_overbought(rsi_map, self._thresholds),
            patterns=[tf.value for tf in patterns],
            divergences=[tf.value for tf in divergences],
            score=str(score.total),
        )

        return InstrumentEvaluation(
            snapshot=snapshot,
            pattern_timeframes=tuple(patterns),
            divergence_timeframes=tuple(divergences),
            score=score,
        )
