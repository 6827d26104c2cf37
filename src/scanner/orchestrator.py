"""Scan pipeline -- one full rank/enrich/compare/alert cycle per call.

Each cycle for a scan mode:
  1. LOAD: Read the previous CycleState (once)
  2. RANK: Fetch tickers and rank the top N by momentum
  3. ENRICH: Evaluate RSI, confluence, patterns and divergence per instrument,
     dispatching single-signal alerts as instruments complete
  4. RE-RANK: Re-sort the top N by RSI extremity
  5. COMPARE: Leader change and confluence growth against the previous cycle
  6. SAVE: Write the new CycleState (once)

A failing instrument degrades to an empty RSI map and never blocks the rest.
Only ranking errors and ticker fetch failures abort the cycle; nothing is
saved in that case.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from scanner.alerts.sink import is_quiet_hours
from scanner.logging import cycle_context, get_logger
from scanner.models import (
    AlertEvent,
    AlertKind,
    CycleState,
    InstrumentSnapshot,
    RankedInstrument,
    ScanMode,
    SignalAlertCache,
)
from scanner.ranking.comparator import CycleDecision, compare_cycle, evaluate_single_signal
from scanner.ranking.ranker import rank_instruments, rerank_by_rsi
from scanner.signals.evaluator import InstrumentEvaluation

if TYPE_CHECKING:
    from scanner.alerts.sink import AlertSink
    from scanner.config import AppSettings
    from scanner.exchange.client import MarketDataClient
    from scanner.signals.evaluator import SignalEvaluator
    from scanner.storage.state_store import CycleStateStore

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScanPipeline:
    """Runs scan cycles for one mode (pump or drop).

    Args:
        mode: Ranking direction.
        settings: Application-wide settings.
        client: Market data source for the ticker snapshot.
        evaluator: Per-instrument indicator evaluation.
        state_store: Persisted state for this mode.
        sink: Alert destination.
        clock: Returns the current time (timezone-aware).
    """

    def __init__(
        self,
        mode: ScanMode,
        settings: AppSettings,
        client: MarketDataClient,
        evaluator: SignalEvaluator,
        state_store: CycleStateStore,
        sink: AlertSink,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._mode = mode
        self._settings = settings
        self._client = client
        self._evaluator = evaluator
        self._state_store = state_store
        self._sink = sink
        self._clock = clock

    @property
    def mode(self) -> ScanMode:
        return self._mode

    async def run_cycle(self) -> CycleDecision | None:
        """Run one scan cycle.

        Returns:
            The cycle decision, or None when no instrument could be ranked.

        Raises:
            RankingError: if the ticker snapshot is empty or not a list.
            TransientFetchError: if the ticker snapshot could not be fetched.
        """
        with cycle_context(self._mode.value):
            return await self._run_cycle()

    async def _run_cycle(self) -> CycleDecision | None:
        scan = self._settings.scan
        thresholds = self._evaluator.thresholds

        previous = await self._state_store.load_state()
        tickers = await self._client.fetch_tickers()
        ranked = rank_instruments(tickers, self._mode, scan.top_n)
        if not ranked:
            logger.warning("no_rankable_instruments", tickers=len(tickers))
            return None

        logger.info(
            "scan_cycle_started",
            tickers=len(tickers),
            ranked=[r.symbol for r in ranked],
            first_run=previous is None,
        )

        now = self._clock()
        silent = is_quiet_hours(
            now, scan.quiet_hours_start, scan.quiet_hours_end, scan.quiet_hours_utc_offset
        )
        cache = previous.signal_alert_cache.copy() if previous else SignalAlertCache()

        snapshots: list[InstrumentSnapshot] = []
        for index, instrument in enumerate(ranked):
            if index > 0 and self._settings.fetch.delay_between_instruments > 0:
                await asyncio.sleep(self._settings.fetch.delay_between_instruments)
            evaluation = await self._evaluate(instrument)
            snapshots.append(evaluation.snapshot)
            prev_snapshot = previous.find(instrument.base_symbol) if previous else None
            await self._dispatch_signal(evaluation, prev_snapshot, cache, now, silent)

        reranked = rerank_by_rsi(snapshots, self._mode, thresholds)
        decision = compare_cycle(reranked, previous, thresholds, scan.whitelist_capacity)

        if decision.leader_suppressed:
            logger.info("leader_change_suppressed", leader=reranked[0].base_symbol)
        for event in decision.events:
            await self._deliver(replace(event, silent=silent))

        await self._state_store.save_state(
            CycleState(
                timestamp=now.isoformat(),
                ranked_instruments=tuple(reranked),
                whitelist=decision.whitelist,
                signal_alert_cache=cache,
            )
        )

        logger.info(
            "scan_cycle_complete",
            leader=reranked[0].base_symbol,
            whitelist=list(decision.whitelist),
            alerted=decision.should_alert,
            reason=decision.reason or None,
        )
        return decision

    async def _evaluate(self, instrument: RankedInstrument) -> InstrumentEvaluation:
        try:
            return await self._evaluator.evaluate(instrument, self._mode)
        except Exception as e:
            logger.warning(
                "instrument_evaluation_failed",
                symbol=instrument.symbol,
                error=str(e),
                exc_info=True,
            )
            return InstrumentEvaluation.empty(instrument)

    async def _dispatch_signal(
        self,
        evaluation: InstrumentEvaluation,
        previous: InstrumentSnapshot | None,
        cache: SignalAlertCache,
        now: datetime,
        silent: bool,
    ) -> None:
        snapshot = evaluation.snapshot
        decision = evaluate_single_signal(
            snapshot,
            previous,
            evaluation.pattern_timeframes,
            cache,
            self._mode,
            self._evaluator.thresholds,
            self._settings.scan.signal_min_rsi_count,
        )
        if decision.duplicate:
            logger.debug(
                "signal_duplicate_suppressed",
                symbol=snapshot.symbol,
                timeframes=[tf.value for tf in decision.timeframes],
            )
            return
        if not decision.should_send:
            return

        event = AlertEvent(
            kind=AlertKind.SINGLE_SIGNAL,
            symbols=(snapshot.symbol,),
            reason=decision.reason,
            timeframes=decision.timeframes,
            score=evaluation.score.total if evaluation.score else None,
            silent=silent,
        )
        if await self._deliver(event):
            cache.record(snapshot.base_symbol, decision.timeframes, now.isoformat())

    async def _deliver(self, event: AlertEvent) -> bool:
        try:
            delivered = await self._sink.deliver(event)
        except Exception as e:
            logger.error(
                "alert_delivery_failed",
                kind=event.kind.value,
                symbols=list(event.symbols),
                error=str(e),
            )
            return False
        if not delivered:
            logger.warning("alert_not_delivered", kind=event.kind.value, symbols=list(event.symbols))
        return delivered
