"""Momentum ranking and the cross-cycle alert comparator."""

from scanner.ranking.comparator import (
    CycleDecision,
    SignalDecision,
    compare_cycle,
    evaluate_single_signal,
    rotate_whitelist,
)
from scanner.ranking.ranker import rank_instruments, rerank_by_rsi

__all__ = [
    "CycleDecision",
    "SignalDecision",
    "compare_cycle",
    "evaluate_single_signal",
    "rank_instruments",
    "rerank_by_rsi",
    "rotate_whitelist",
]
