"""Tests for the composite signal score.

Default weights: RSI 12/8/5 (cap 40), divergence 15/10/6 +5 per extra
(cap 30), pattern 12/8/5 +5 when multi-timeframe (cap 30).
"""

from decimal import Decimal

import pytest

from scanner.config import ScoringSettings
from scanner.models import Timeframe
from scanner.signals.scoring import (
    compute_divergence_component,
    compute_pattern_component,
    compute_rsi_component,
    compute_signal_score,
    rsi_depth_multiplier,
)


@pytest.fixture
def scoring() -> ScoringSettings:
    return ScoringSettings()


class TestDepthMultiplier:
    @pytest.mark.parametrize(
        ("rsi", "expected"),
        [
            ("30", "0"),
            ("50", "0"),
            ("60", "0.5"),
            ("70", "1"),
            ("79.9", "1"),
            ("80", "1.2"),
            ("89.9", "1.2"),
            ("90", "1.2"),
            ("95", "1.35"),
            ("100", "1.5"),
        ],
    )
    def test_curve(self, scoring: ScoringSettings, rsi: str, expected: str) -> None:
        assert rsi_depth_multiplier(Decimal(rsi), scoring) == Decimal(expected)

    def test_capped_at_max_multiplier(self) -> None:
        settings = ScoringSettings(rsi_max_multiplier=Decimal("1.4"))
        assert rsi_depth_multiplier(Decimal("100"), settings) == Decimal("1.4")


class TestComponents:
    def test_rsi_component_weighted_by_class(self, scoring: ScoringSettings) -> None:
        rsi_map = {Timeframe.M5: None, Timeframe.M15: 60.0, Timeframe.H1: 75.0, Timeframe.H4: 95.0}
        # 5 * 0.5 + 8 * 1.0 + 12 * 1.35
        assert compute_rsi_component(rsi_map, scoring) == Decimal("26.7")

    def test_rsi_component_capped(self, scoring: ScoringSettings) -> None:
        rsi_map = {Timeframe.H4: 100.0, Timeframe.H8: 100.0, Timeframe.D1: 100.0}
        assert compute_rsi_component(rsi_map, scoring) == Decimal("40")

    def test_divergence_bonus_per_extra(self, scoring: ScoringSettings) -> None:
        assert compute_divergence_component([Timeframe.H4, Timeframe.M15], scoring) == Decimal("26")

    def test_divergence_unique_timeframes(self, scoring: ScoringSettings) -> None:
        assert compute_divergence_component([Timeframe.M15, Timeframe.M15], scoring) == Decimal("6")

    def test_divergence_capped(self, scoring: ScoringSettings) -> None:
        tfs = [Timeframe.H4, Timeframe.H8, Timeframe.H1]
        assert compute_divergence_component(tfs, scoring) == Decimal("30")

    def test_empty_components(self, scoring: ScoringSettings) -> None:
        assert compute_divergence_component([], scoring) == Decimal("0")
        assert compute_pattern_component([], scoring) == Decimal("0")
        assert compute_rsi_component({}, scoring) == Decimal("0")

    def test_pattern_single_and_multi(self, scoring: ScoringSettings) -> None:
        assert compute_pattern_component([Timeframe.M5], scoring) == Decimal("5")
        assert compute_pattern_component([Timeframe.M5, Timeframe.M15], scoring) == Decimal("15")

    def test_pattern_capped(self, scoring: ScoringSettings) -> None:
        tfs = [Timeframe.H4, Timeframe.H8, Timeframe.D1]
        assert compute_pattern_component(tfs, scoring) == Decimal("30")


class TestComputeSignalScore:
    def test_total_is_sum_of_components(self, scoring: ScoringSettings) -> None:
        score = compute_signal_score(
            {Timeframe.H1: 75.0}, [Timeframe.M15], [Timeframe.M5], scoring
        )
        assert score.rsi == Decimal("8.00")
        assert score.divergence == Decimal("6.00")
        assert score.pattern == Decimal("5.00")
        assert score.total == Decimal("19.00")

    def test_total_capped_at_100(self) -> None:
        settings = ScoringSettings(rsi_max_score=Decimal("80"))
        rsi_map = {tf: 100.0 for tf in (Timeframe.H4, Timeframe.H8, Timeframe.D1, Timeframe.W1)}
        score = compute_signal_score(
            rsi_map, [Timeframe.H4, Timeframe.D1], [Timeframe.H4, Timeframe.D1], settings
        )
        assert score.rsi == Decimal("72.00")
        assert score.total == Decimal("100.00")

    def test_monthly_timeframe_scored_as_large(self, scoring: ScoringSettings) -> None:
        score = compute_signal_score({}, [], [Timeframe.MN1], scoring)
        assert score.pattern == Decimal("12.00")
