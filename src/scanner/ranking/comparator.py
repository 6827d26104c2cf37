"""Cross-cycle alert decisions: leader changes, confluence growth, single signals.

Leader alerts are damped by a small most-recent-first whitelist of base
symbols. A new leader that is already whitelisted does not alert (it is a
recent leader flapping back) but is still rotated to the front.

Cycle state machine:
  no prior state     -> always alert, seed whitelist with the leader
  leader unchanged   -> no leader alert, whitelist carried over
  leader whitelisted -> no leader alert, whitelist rotated
  otherwise          -> leader alert, whitelist rotated

Confluence increases are evaluated independently and raise (or append to)
the alert.
"""

from dataclasses import dataclass, field

from scanner.indicators.confluence import ConfluenceIncrease, detect_confluence_increases
from scanner.indicators.rsi import RsiThresholds, timeframes_with_status
from scanner.models import (
    AlertEvent,
    AlertKind,
    BaseSymbol,
    CycleState,
    InstrumentSnapshot,
    ScanMode,
    SignalAlertCache,
    Timeframe,
    sort_timeframes,
)

REASON_SEPARATOR = " + "


def rotate_whitelist(
    whitelist: tuple[BaseSymbol, ...], leader: BaseSymbol, capacity: int = 2
) -> tuple[BaseSymbol, ...]:
    """Move ``leader`` to the front, dropping the oldest entry past capacity."""
    rotated = [leader, *(symbol for symbol in whitelist if symbol != leader)]
    return tuple(rotated[: max(1, capacity)])


@dataclass
class CycleDecision:
    """Outcome of comparing the current ranking against the previous cycle."""

    should_alert: bool
    whitelist: tuple[BaseSymbol, ...]
    reasons: list[str] = field(default_factory=list)
    events: list[AlertEvent] = field(default_factory=list)
    leader_changed: bool = False
    leader_suppressed: bool = False
    confluence_increases: list[ConfluenceIncrease] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return REASON_SEPARATOR.join(self.reasons)


def _describe_increase(increase: ConfluenceIncrease) -> str:
    confluence = increase.snapshot.confluence
    timeframes = ",".join(tf.value for tf in confluence.timeframes)
    return (
        f"{increase.snapshot.base_symbol} {confluence.status.value} confluence "
        f"{increase.previous_count}->{increase.current_count} ({timeframes})"
    )


def compare_cycle(
    current: list[InstrumentSnapshot],
    previous: CycleState | None,
    thresholds: RsiThresholds,
    capacity: int = 2,
) -> CycleDecision:
    """Decide which alerts the current ranking warrants.

    Args:
        current: Re-ranked snapshots for this cycle (leader first).
        previous: Last persisted state, or None on the first run.
        thresholds: RSI status boundaries for confluence comparison.
        capacity: Whitelist capacity.

    Returns:
        CycleDecision with one AlertEvent per alert kind and the whitelist
        to persist.
    """
    leader = current[0] if current else None

    if previous is None:
        if leader is None:
            return CycleDecision(should_alert=False, whitelist=())
        reason = f"initial snapshot: {leader.base_symbol} leads"
        return CycleDecision(
            should_alert=True,
            whitelist=(leader.base_symbol,),
            reasons=[reason],
            events=[
                AlertEvent(
                    kind=AlertKind.LEADER_CHANGE,
                    symbols=(leader.symbol,),
                    reason=reason,
                )
            ],
            leader_changed=True,
        )

    decision = CycleDecision(should_alert=False, whitelist=previous.whitelist)
    prev_leader = previous.leader

    if leader is not None and prev_leader is not None:
        if leader.base_symbol != prev_leader.base_symbol:
            decision.leader_changed = True
            decision.whitelist = rotate_whitelist(
                previous.whitelist, leader.base_symbol, capacity
            )
            if leader.base_symbol in previous.whitelist:
                decision.leader_suppressed = True
            else:
                reason = f"leader changed: {prev_leader.base_symbol} -> {leader.base_symbol}"
                decision.reasons.append(reason)
                decision.events.append(
                    AlertEvent(
                        kind=AlertKind.LEADER_CHANGE,
                        symbols=(leader.symbol, prev_leader.symbol),
                        reason=reason,
                    )
                )

    increases = detect_confluence_increases(current, previous.ranked_instruments, thresholds)
    if increases:
        decision.confluence_increases = increases
        descriptions = [_describe_increase(inc) for inc in increases]
        decision.reasons.extend(descriptions)
        timeframes: set[Timeframe] = set()
        for inc in increases:
            timeframes.update(inc.snapshot.confluence.timeframes)
        decision.events.append(
            AlertEvent(
                kind=AlertKind.CONFLUENCE_INCREASE,
                symbols=tuple(inc.snapshot.symbol for inc in increases),
                reason=REASON_SEPARATOR.join(descriptions),
                timeframes=tuple(sort_timeframes(timeframes)),
            )
        )

    decision.should_alert = bool(decision.events)
    return decision


@dataclass(frozen=True)
class SignalDecision:
    """Whether a single-instrument signal alert should be sent."""

    should_send: bool
    reason: str = ""
    timeframes: tuple[Timeframe, ...] = ()
    duplicate: bool = False


def evaluate_single_signal(
    snapshot: InstrumentSnapshot,
    previous: InstrumentSnapshot | None,
    pattern_timeframes: list[Timeframe] | tuple[Timeframe, ...],
    cache: SignalAlertCache,
    mode: ScanMode,
    thresholds: RsiThresholds,
    min_rsi_count: int = 1,
) -> SignalDecision:
    """Build a candidate signal for one instrument and check it against the cache.

    A candidate needs at least ``min_rsi_count`` timeframes in the mode's
    relevant RSI status, plus a trigger: a reversal pattern on some
    timeframe, or more relevant-status timeframes than the same instrument
    had last cycle. Pattern timeframes take precedence as the signal's
    timeframe set; a count increase alone uses all relevant-status
    timeframes.

    The cache is not modified here; the caller records the entry once the
    alert was actually delivered.
    """
    status = mode.relevant_status
    relevant = timeframes_with_status(snapshot.rsi, status, thresholds)
    if len(relevant) < max(1, min_rsi_count):
        return SignalDecision(should_send=False)

    prev_count = (
        len(timeframes_with_status(previous.rsi, status, thresholds)) if previous else 0
    )

    reasons: list[str] = []
    timeframes: set[Timeframe] = set()
    if pattern_timeframes:
        reasons.append("reversal pattern")
        timeframes.update(pattern_timeframes)
    if len(relevant) > prev_count:
        reasons.append(f"{status.value} count {prev_count}->{len(relevant)}")
        if not pattern_timeframes:
            timeframes.update(relevant)

    if not reasons:
        return SignalDecision(should_send=False)

    ordered = tuple(sort_timeframes(timeframes))
    reason = REASON_SEPARATOR.join(reasons)
    if cache.is_duplicate(snapshot.base_symbol, ordered):
        return SignalDecision(should_send=False, reason=reason, timeframes=ordered, duplicate=True)

    return SignalDecision(should_send=True, reason=reason, timeframes=ordered)
