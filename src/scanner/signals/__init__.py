"""Signal scoring and per-instrument evaluation.

The scorer is pure; the SignalEvaluator drives candle fetches and applies the
indicator functions to produce an InstrumentEvaluation per ranked instrument.
"""

from scanner.signals.evaluator import InstrumentEvaluation, SignalEvaluator
from scanner.signals.scoring import (
    SignalScore,
    compute_divergence_component,
    compute_pattern_component,
    compute_rsi_component,
    compute_signal_score,
    rsi_depth_multiplier,
)

__all__ = [
    "InstrumentEvaluation",
    "SignalEvaluator",
    "SignalScore",
    "compute_divergence_component",
    "compute_pattern_component",
    "compute_rsi_component",
    "compute_signal_score",
    "rsi_depth_multiplier",
]
