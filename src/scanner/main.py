"""Entry point for the futures momentum scanner.

Wires all components together and runs one scheduler per scan mode on a
single asyncio event loop. Handles SIGINT/SIGTERM for graceful shutdown:
schedulers stop ticking and in-flight cycles finish before exit.

Component wiring order (in _build_components):
1. MarketDataClient (ccxt)
2. RequestPacer (shared across modes)
3. SignalEvaluator
4. AlertSink
5. Per mode: CycleStateStore, ScanPipeline, Scheduler
"""

import asyncio
import signal
from typing import Any

from scanner.alerts.sink import LoggingAlertSink
from scanner.config import AppSettings
from scanner.exchange.ccxt_client import CcxtMarketDataClient
from scanner.exchange.pacer import RequestPacer
from scanner.logging import get_logger, setup_logging
from scanner.models import ScanMode
from scanner.orchestrator import ScanPipeline
from scanner.scheduler import Scheduler
from scanner.signals.evaluator import SignalEvaluator
from scanner.storage.database import StateDatabase
from scanner.storage.state_store import CycleStateStore


def _build_components(settings: AppSettings, database: StateDatabase) -> dict[str, Any]:
    """Build the scanner dependency graph.

    Note: Does NOT call client.connect() or database.connect() -- that
    happens in run().

    Args:
        settings: Application-wide settings.
        database: State database shared by all modes.

    Returns:
        Dict mapping component names to instances; "schedulers" maps each
        scan mode to its Scheduler.
    """
    client = CcxtMarketDataClient(settings.exchange)
    pacer = RequestPacer(
        max_concurrent=settings.fetch.max_concurrent_timeframes,
        min_interval=settings.fetch.request_delay,
    )
    evaluator = SignalEvaluator(
        client=client,
        pacer=pacer,
        rsi_settings=settings.rsi,
        fetch_settings=settings.fetch,
        scan_settings=settings.scan,
        scoring_settings=settings.scoring,
    )
    sink = LoggingAlertSink()

    pipelines: dict[ScanMode, ScanPipeline] = {}
    schedulers: dict[ScanMode, Scheduler] = {}
    for mode in dict.fromkeys(ScanMode(m) for m in settings.scan.modes):
        pipeline = ScanPipeline(
            mode=mode,
            settings=settings,
            client=client,
            evaluator=evaluator,
            state_store=CycleStateStore(database, key=mode.value),
            sink=sink,
        )
        pipelines[mode] = pipeline
        schedulers[mode] = Scheduler(
            pipeline.run_cycle,
            interval_seconds=settings.scan.interval_seconds,
            name=mode.value,
        )

    return {
        "client": client,
        "pacer": pacer,
        "evaluator": evaluator,
        "sink": sink,
        "pipelines": pipelines,
        "schedulers": schedulers,
    }


def _setup_signal_handlers(schedulers: list[Scheduler]) -> None:
    """Register SIGINT/SIGTERM to stop all schedulers gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("scanner.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        for scheduler in schedulers:
            scheduler.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def run() -> None:
    """Run the scanner until interrupted."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("scanner.main")

    async with StateDatabase(settings.storage.db_path) as database:
        components = _build_components(settings, database)
        schedulers: dict[ScanMode, Scheduler] = components["schedulers"]

        _setup_signal_handlers(list(schedulers.values()))

        logger.info(
            "scanner_starting",
            exchange=settings.exchange.exchange_id,
            modes=[m.value for m in schedulers],
            timeframes=settings.rsi.timeframes,
            top_n=settings.scan.top_n,
            interval=settings.scan.interval_seconds,
        )

        client = components["client"]
        try:
            await client.connect()
            await asyncio.gather(*(s.run() for s in schedulers.values()))
        finally:
            await client.close()
            logger.info("scanner_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
