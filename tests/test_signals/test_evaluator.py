"""Tests for SignalEvaluator -- batched RSI maps, pattern and divergence scans."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import ccxt
import pytest

from scanner.config import AppSettings
from scanner.exceptions import DataUnavailable, InsufficientHistory, TransientFetchError
from scanner.exchange.pacer import RequestPacer
from scanner.models import (
    Candle,
    CandleSeries,
    RankedInstrument,
    RsiStatus,
    ScanMode,
    Timeframe,
    get_base_symbol,
)
from scanner.signals.evaluator import InstrumentEvaluation, SignalEvaluator

RISING = [float(100 + i) for i in range(40)]
FLAT = [100.0] * 40
# Closed candles diverge (lows 84 then 83 with RSI rising); the in-progress
# 90 would turn the trailing 84 into a higher last low.
DIVERGENT = [float(v) for v in range(100, 83, -1)] + [90, 95, 96, 85, 83, 86, 84, 90]

HAMMER_WINDOW = (
    Candle(open=Decimal("11"), high=Decimal("11.5"), low=Decimal("10.5"), close=Decimal("10.8")),
    Candle(open=Decimal("10"), high=Decimal("10.15"), low=Decimal("9.0"), close=Decimal("10.1")),
    # In-progress candle, stripped before pattern checks
    Candle(open=Decimal("10.1"), high=Decimal("11.2"), low=Decimal("10.0"), close=Decimal("11.1")),
)


def _ranked(symbol: str = "FOO/USDT:USDT") -> RankedInstrument:
    return RankedInstrument(
        rank=1,
        symbol=symbol,
        base_symbol=get_base_symbol(symbol),
        momentum_rate=Decimal("0.12"),
        volume_24h=Decimal("1000000"),
        funding_rate=Decimal("0.0001"),
    )


def _evaluator(settings: AppSettings, client: MagicMock) -> SignalEvaluator:
    return SignalEvaluator(
        client=client,
        pacer=RequestPacer(max_concurrent=2, min_interval=0.0),
        rsi_settings=settings.rsi,
        fetch_settings=settings.fetch,
        scan_settings=settings.scan,
        scoring_settings=settings.scoring,
    )


def _client(make_series, closes_by_tf: dict, errors: dict | None = None, pattern=None) -> MagicMock:
    """Mock client serving closes per timeframe; pattern-sized requests get ``pattern``."""
    errors = errors or {}

    def fetch(symbol: str, timeframe: Timeframe, count: int) -> CandleSeries:
        if timeframe in errors:
            raise errors[timeframe]
        if pattern is not None and count == 10:
            return CandleSeries(symbol, timeframe, pattern)
        return make_series(symbol, timeframe, closes_by_tf.get(timeframe, RISING))

    client = MagicMock()
    client.fetch_candles = AsyncMock(side_effect=fetch)
    return client


def _fetched_timeframes(client: MagicMock) -> list[Timeframe]:
    return [call.args[1] for call in client.fetch_candles.call_args_list]


class TestComputeRsiMap:
    @pytest.mark.asyncio
    async def test_all_timeframes_in_order(self, mock_settings, make_series) -> None:
        client = _client(make_series, {Timeframe.H1: FLAT})
        evaluator = _evaluator(mock_settings, client)

        rsi_map = await evaluator.compute_rsi_map("FOO/USDT:USDT")

        assert list(rsi_map) == [Timeframe.M5, Timeframe.M15, Timeframe.H1, Timeframe.H4]
        assert rsi_map[Timeframe.M5] == 100.0
        assert rsi_map[Timeframe.H1] == 50.0
        assert all(call.args[2] == 64 for call in client.fetch_candles.call_args_list)

    @pytest.mark.asyncio
    async def test_missing_data_short_circuits_larger_timeframes(
        self, mock_settings, make_series
    ) -> None:
        client = _client(
            make_series, {}, errors={Timeframe.M15: DataUnavailable("no candles")}
        )
        evaluator = _evaluator(mock_settings, client)

        rsi_map = await evaluator.compute_rsi_map("FOO/USDT:USDT")

        assert rsi_map[Timeframe.M5] == 100.0
        assert rsi_map[Timeframe.M15] is None
        assert rsi_map[Timeframe.H1] is None
        assert rsi_map[Timeframe.H4] is None
        # Second batch (1h, 4h) is never requested
        assert sorted(_fetched_timeframes(client), key=lambda tf: tf.order) == [
            Timeframe.M5,
            Timeframe.M15,
        ]

    @pytest.mark.asyncio
    async def test_short_history_short_circuits(self, mock_settings, make_series) -> None:
        client = _client(make_series, {Timeframe.H1: RISING[:10]})
        evaluator = _evaluator(mock_settings, client)

        rsi_map = await evaluator.compute_rsi_map("FOO/USDT:USDT")

        assert rsi_map[Timeframe.M15] == 100.0
        assert rsi_map[Timeframe.H1] is None
        assert rsi_map[Timeframe.H4] is None

    @pytest.mark.asyncio
    async def test_insufficient_history_error_short_circuits(
        self, mock_settings, make_series
    ) -> None:
        client = _client(make_series, {}, errors={Timeframe.M5: InsufficientHistory("new listing")})
        evaluator = _evaluator(mock_settings, client)

        rsi_map = await evaluator.compute_rsi_map("FOO/USDT:USDT")

        assert all(value is None for value in rsi_map.values())

    @pytest.mark.asyncio
    async def test_transient_error_nulls_only_that_timeframe(
        self, mock_settings, make_series
    ) -> None:
        client = _client(make_series, {}, errors={Timeframe.M15: TransientFetchError("timeout")})
        evaluator = _evaluator(mock_settings, client)

        rsi_map = await evaluator.compute_rsi_map("FOO/USDT:USDT")

        assert rsi_map[Timeframe.M15] is None
        assert rsi_map[Timeframe.M5] == 100.0
        assert rsi_map[Timeframe.H1] == 100.0
        assert rsi_map[Timeframe.H4] == 100.0

    @pytest.mark.asyncio
    async def test_unexpected_error_nulls_only_that_timeframe(
        self, mock_settings, make_series
    ) -> None:
        client = _client(
            make_series, {}, errors={Timeframe.M15: ccxt.BadResponse("malformed JSON")}
        )
        evaluator = _evaluator(mock_settings, client)

        rsi_map = await evaluator.compute_rsi_map("FOO/USDT:USDT")

        assert rsi_map[Timeframe.M5] == 100.0
        assert rsi_map[Timeframe.M15] is None
        assert rsi_map[Timeframe.H1] == 100.0
        assert rsi_map[Timeframe.H4] == 100.0


class TestPatternAndDivergenceScans:
    @pytest.mark.asyncio
    async def test_pattern_on_closed_candle(self, mock_settings, make_series) -> None:
        client = _client(make_series, {}, pattern=HAMMER_WINDOW)
        evaluator = _evaluator(mock_settings, client)

        found = await evaluator.pattern_timeframes("FOO/USDT:USDT")

        assert found == [Timeframe.M5, Timeframe.M15]

    @pytest.mark.asyncio
    async def test_failed_fetch_counts_as_no_pattern(self, mock_settings, make_series) -> None:
        client = _client(
            make_series,
            {},
            errors={Timeframe.M5: TransientFetchError("timeout")},
            pattern=HAMMER_WINDOW,
        )
        evaluator = _evaluator(mock_settings, client)

        assert await evaluator.pattern_timeframes("FOO/USDT:USDT") == [Timeframe.M15]

    @pytest.mark.asyncio
    async def test_no_divergence_on_rising_series(self, mock_settings, make_series) -> None:
        client = _client(make_series, {})
        evaluator = _evaluator(mock_settings, client)

        assert await evaluator.divergence_timeframes("FOO/USDT:USDT") == []

    @pytest.mark.asyncio
    async def test_unexpected_error_counts_as_no_pattern(self, mock_settings, make_series) -> None:
        client = _client(
            make_series,
            {},
            errors={Timeframe.M15: ccxt.NullResponse("empty body")},
            pattern=HAMMER_WINDOW,
        )
        evaluator = _evaluator(mock_settings, client)

        assert await evaluator.pattern_timeframes("FOO/USDT:USDT") == [Timeframe.M5]

    @pytest.mark.asyncio
    async def test_divergence_on_closed_candles(self, mock_settings, make_series) -> None:
        client = _client(make_series, {Timeframe.M5: DIVERGENT})
        evaluator = _evaluator(mock_settings, client)

        assert await evaluator.divergence_timeframes("FOO/USDT:USDT") == [Timeframe.M5]

    @pytest.mark.asyncio
    async def test_failed_fetch_counts_as_no_divergence(self, mock_settings, make_series) -> None:
        client = _client(
            make_series,
            {Timeframe.M5: DIVERGENT, Timeframe.M15: DIVERGENT},
            errors={
                Timeframe.M5: TransientFetchError("timeout"),
                Timeframe.M15: ccxt.BadResponse("malformed JSON"),
            },
        )
        evaluator = _evaluator(mock_settings, client)

        assert await evaluator.divergence_timeframes("FOO/USDT:USDT") == []


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_overbought_instrument_scanned_for_signals(
        self, mock_settings, make_series
    ) -> None:
        client = _client(make_series, {}, pattern=HAMMER_WINDOW)
        evaluator = _evaluator(mock_settings, client)

        evaluation = await evaluator.evaluate(_ranked(), ScanMode.PUMP)

        snapshot = evaluation.snapshot
        assert snapshot.base_symbol == "FOO"
        assert snapshot.confluence.status is RsiStatus.OVERBOUGHT
        assert snapshot.confluence.count == 4
        assert evaluation.pattern_timeframes == (Timeframe.M5, Timeframe.M15)
        assert evaluation.score is not None
        assert evaluation.score.pattern == Decimal("15.00")

    @pytest.mark.asyncio
    async def test_neutral_instrument_skips_signal_scans(self, mock_settings, make_series) -> None:
        closes = {tf: FLAT for tf in Timeframe}
        client = _client(make_series, closes, pattern=HAMMER_WINDOW)
        evaluator = _evaluator(mock_settings, client)

        evaluation = await evaluator.evaluate(_ranked(), ScanMode.PUMP)

        assert evaluation.pattern_timeframes == ()
        assert evaluation.divergence_timeframes == ()
        assert client.fetch_candles.await_count == 4

    def test_empty_evaluation(self) -> None:
        evaluation = InstrumentEvaluation.empty(_ranked())
        assert evaluation.snapshot.rsi == {}
        assert evaluation.snapshot.confluence.has_confluence is False
        assert evaluation.score is None
