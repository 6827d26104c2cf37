"""Shared data models for the momentum scanner.

Prices, rates and volumes use Decimal (parsed via ``Decimal(str(x))``).
RSI values are floats kept at full precision; they are rounded only for
display. All cross-cycle identity goes through ``get_base_symbol``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, NewType

from scanner.exceptions import StateCorrupt


class Timeframe(str, Enum):
    """Supported candle timeframes, declared smallest first."""

    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    H8 = "8h"
    D1 = "1d"
    W1 = "1w"
    MN1 = "1M"

    @classmethod
    def parse(cls, value: str | Timeframe) -> Timeframe:
        """Parse a timeframe id, accepting ccxt ids and MEXC interval names."""
        if isinstance(value, Timeframe):
            return value
        return cls(_TIMEFRAME_ALIASES.get(value, value))

    @property
    def order(self) -> int:
        return _TIMEFRAME_ORDER[self]


_TIMEFRAME_ALIASES: dict[str, str] = {
    "60m": "1h",
    "Min1": "1m",
    "Min5": "5m",
    "Min15": "15m",
    "Min30": "30m",
    "Min60": "1h",
    "Hour1": "1h",
    "Hour4": "4h",
    "Hour8": "8h",
    "Day1": "1d",
    "Week1": "1w",
    "Month1": "1M",
}

_TIMEFRAME_ORDER: dict[Timeframe, int] = {tf: i for i, tf in enumerate(Timeframe)}


def sort_timeframes(timeframes: Any) -> list[Timeframe]:
    """Return unique timeframes sorted smallest first."""
    return sorted({Timeframe.parse(tf) for tf in timeframes}, key=lambda tf: tf.order)


class TimeframeClass(str, Enum):
    """Timeframe weighting class used by the signal scorer."""

    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"


_TIMEFRAME_CLASSES: dict[Timeframe, TimeframeClass] = {
    Timeframe.MN1: TimeframeClass.LARGE,
    Timeframe.W1: TimeframeClass.LARGE,
    Timeframe.D1: TimeframeClass.LARGE,
    Timeframe.H8: TimeframeClass.LARGE,
    Timeframe.H4: TimeframeClass.LARGE,
    Timeframe.H1: TimeframeClass.MEDIUM,
    Timeframe.M30: TimeframeClass.MEDIUM,
    Timeframe.M15: TimeframeClass.SMALL,
    Timeframe.M5: TimeframeClass.SMALL,
    Timeframe.M1: TimeframeClass.SMALL,
}

#: Minute-scale timeframes use the "small" overbought threshold.
MINUTE_SCALE_TIMEFRAMES = frozenset(
    {Timeframe.M1, Timeframe.M5, Timeframe.M15, Timeframe.M30}
)

#: Confluence growth is only escalated when one of these is in the set.
ESCALATION_TIMEFRAMES = frozenset({Timeframe.H4, Timeframe.H8, Timeframe.D1})


def timeframe_class(timeframe: Timeframe) -> TimeframeClass:
    return _TIMEFRAME_CLASSES[timeframe]


class RsiStatus(str, Enum):
    """RSI extreme classification."""

    OVERSOLD = "oversold"
    NEUTRAL = "neutral"
    OVERBOUGHT = "overbought"


#: Timeframe -> RSI value, or None when the timeframe had no usable data.
RsiMap = dict[Timeframe, float | None]


class ScanMode(str, Enum):
    """Ranking direction: biggest risers (pump) or biggest fallers (drop)."""

    PUMP = "pump"
    DROP = "drop"

    @property
    def relevant_status(self) -> RsiStatus:
        """RSI extreme that matters for this mode's signal checks."""
        return RsiStatus.OVERBOUGHT if self is ScanMode.PUMP else RsiStatus.OVERSOLD


BaseSymbol = NewType("BaseSymbol", str)

_QUOTE_SUFFIX = re.compile(r"_(USDT|USDC)$")


def get_base_symbol(symbol: str | None) -> BaseSymbol:
    """Strip the quote currency from a symbol.

    ``FOO_USDT`` and ``FOO_USDC`` both map to ``FOO``. ccxt unified symbols
    (``FOO/USDT:USDT``) map to their base currency.
    """
    if not symbol:
        return BaseSymbol("")
    if "/" in symbol:
        return BaseSymbol(symbol.split("/", 1)[0])
    return BaseSymbol(_QUOTE_SUFFIX.sub("", symbol))


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _from_decimal(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class Candle:
    """A single OHLC candle."""

    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal


@dataclass(frozen=True)
class CandleSeries:
    """Candles for one symbol/timeframe, oldest first.

    The last candle may still be in progress; ``closed()`` drops it.
    """

    symbol: str
    timeframe: Timeframe
    candles: tuple[Candle, ...]

    def __len__(self) -> int:
        return len(self.candles)

    def closed(self) -> CandleSeries:
        return CandleSeries(self.symbol, self.timeframe, self.candles[:-1])

    def closes(self) -> list[Decimal]:
        return [c.close for c in self.candles]


@dataclass(frozen=True)
class ConfluenceResult:
    """Timeframes sharing the dominant extreme RSI status."""

    has_confluence: bool
    status: RsiStatus
    timeframes: tuple[Timeframe, ...]
    count: int

    @classmethod
    def none(cls) -> ConfluenceResult:
        return cls(has_confluence=False, status=RsiStatus.NEUTRAL, timeframes=(), count=0)

    def to_dict(self) -> dict:
        return {
            "has_confluence": self.has_confluence,
            "status": self.status.value,
            "timeframes": [tf.value for tf in self.timeframes],
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ConfluenceResult:
        return cls(
            has_confluence=bool(data["has_confluence"]),
            status=RsiStatus(data["status"]),
            timeframes=tuple(Timeframe.parse(tf) for tf in data["timeframes"]),
            count=int(data["count"]),
        )


@dataclass
class TickerSnapshot:
    """One row of the raw ticker feed."""

    symbol: str
    momentum_rate: Decimal | None  # fractional 24h change, e.g. 0.12 = +12%
    volume_24h: Decimal
    last_price: Decimal | None = None
    high_24h: Decimal | None = None
    low_24h: Decimal | None = None
    funding_rate: Decimal | None = None


@dataclass(frozen=True)
class RankedInstrument:
    """A ticker row selected into the top-N by momentum."""

    rank: int
    symbol: str
    base_symbol: BaseSymbol
    momentum_rate: Decimal
    volume_24h: Decimal
    funding_rate: Decimal
    last_price: Decimal | None = None
    high_24h: Decimal | None = None
    low_24h: Decimal | None = None


@dataclass(frozen=True)
class InstrumentSnapshot:
    """Ranked instrument with its indicators attached. Built once per cycle."""

    symbol: str
    base_symbol: BaseSymbol
    rank: int
    momentum_rate: Decimal
    rsi: RsiMap
    confluence: ConfluenceResult
    funding_rate: Decimal = Decimal("0")
    volume_24h: Decimal = Decimal("0")
    last_price: Decimal | None = None
    high_24h: Decimal | None = None
    low_24h: Decimal | None = None

    @classmethod
    def from_ranked(
        cls, ranked: RankedInstrument, rsi: RsiMap, confluence: ConfluenceResult
    ) -> InstrumentSnapshot:
        return cls(
            symbol=ranked.symbol,
            base_symbol=ranked.base_symbol,
            rank=ranked.rank,
            momentum_rate=ranked.momentum_rate,
            rsi=rsi,
            confluence=confluence,
            funding_rate=ranked.funding_rate,
            volume_24h=ranked.volume_24h,
            last_price=ranked.last_price,
            high_24h=ranked.high_24h,
            low_24h=ranked.low_24h,
        )

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "base_symbol": self.base_symbol,
            "rank": self.rank,
            "momentum_rate": str(self.momentum_rate),
            "rsi": {tf.value: value for tf, value in self.rsi.items()},
            "confluence": self.confluence.to_dict(),
            "funding_rate": str(self.funding_rate),
            "volume_24h": str(self.volume_24h),
            "last_price": _from_decimal(self.last_price),
            "high_24h": _from_decimal(self.high_24h),
            "low_24h": _from_decimal(self.low_24h),
        }

    @classmethod
    def from_dict(cls, data: dict) -> InstrumentSnapshot:
        rsi: RsiMap = {}
        for tf, value in data["rsi"].items():
            rsi[Timeframe.parse(tf)] = None if value is None else float(value)
        return cls(
            symbol=data["symbol"],
            base_symbol=get_base_symbol(data["symbol"]),
            rank=int(data["rank"]),
            momentum_rate=Decimal(data["momentum_rate"]),
            rsi=rsi,
            confluence=ConfluenceResult.from_dict(data["confluence"]),
            funding_rate=Decimal(data["funding_rate"]),
            volume_24h=Decimal(data["volume_24h"]),
            last_price=_to_decimal(data.get("last_price")),
            high_24h=_to_decimal(data.get("high_24h")),
            low_24h=_to_decimal(data.get("low_24h")),
        )


@dataclass(frozen=True)
class SignalCacheEntry:
    """The most recently sent single-signal alert for one instrument."""

    timeframes: tuple[Timeframe, ...]  # sorted smallest first
    timestamp: str  # ISO-8601


class SignalAlertCache:
    """Last-sent signal timeframes per base symbol.

    Used to suppress re-sending an identical signal on consecutive cycles.
    Timeframe sets are compared order-independently.
    """

    def __init__(self, entries: dict[BaseSymbol, SignalCacheEntry] | None = None) -> None:
        self._entries: dict[BaseSymbol, SignalCacheEntry] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, base_symbol: object) -> bool:
        return base_symbol in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalAlertCache):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"SignalAlertCache({self._entries!r})"

    def get(self, base_symbol: BaseSymbol) -> SignalCacheEntry | None:
        return self._entries.get(base_symbol)

    def is_duplicate(self, base_symbol: BaseSymbol, timeframes: Any) -> bool:
        """True if ``timeframes`` equals the last sent set for this instrument."""
        entry = self._entries.get(base_symbol)
        if entry is None:
            return False
        return tuple(sort_timeframes(timeframes)) == entry.timeframes

    def record(self, base_symbol: BaseSymbol, timeframes: Any, timestamp: str) -> None:
        self._entries[base_symbol] = SignalCacheEntry(
            timeframes=tuple(sort_timeframes(timeframes)),
            timestamp=timestamp,
        )

    def copy(self) -> SignalAlertCache:
        return SignalAlertCache(self._entries)

    def to_dict(self) -> dict:
        return {
            base: {
                "timeframes": [tf.value for tf in entry.timeframes],
                "timestamp": entry.timestamp,
            }
            for base, entry in self._entries.items()
        }

    @classmethod
    def from_dict(cls, data: dict) -> SignalAlertCache:
        cache = cls()
        for base, entry in data.items():
            cache.record(BaseSymbol(base), entry["timeframes"], str(entry["timestamp"]))
        return cache


class AlertKind(str, Enum):
    LEADER_CHANGE = "leader_change"
    CONFLUENCE_INCREASE = "confluence_increase"
    SINGLE_SIGNAL = "single_signal"


@dataclass(frozen=True)
class AlertEvent:
    """Abstract alert handed to the notifier. Carries no formatting."""

    kind: AlertKind
    symbols: tuple[str, ...]
    reason: str
    timeframes: tuple[Timeframe, ...] = ()
    score: Decimal | None = None
    silent: bool = False


@dataclass(frozen=True)
class CycleState:
    """Everything persisted between cycles. Replaced wholesale every cycle."""

    timestamp: str
    ranked_instruments: tuple[InstrumentSnapshot, ...]
    whitelist: tuple[BaseSymbol, ...]
    signal_alert_cache: SignalAlertCache = field(default_factory=SignalAlertCache)

    @property
    def leader(self) -> InstrumentSnapshot | None:
        return self.ranked_instruments[0] if self.ranked_instruments else None

    def find(self, base_symbol: BaseSymbol) -> InstrumentSnapshot | None:
        """Look up a previous-cycle instrument by base symbol."""
        for snapshot in self.ranked_instruments:
            if snapshot.base_symbol == base_symbol:
                return snapshot
        return None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "ranked_instruments": [s.to_dict() for s in self.ranked_instruments],
            "whitelist": list(self.whitelist),
            "signal_alert_cache": self.signal_alert_cache.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> CycleState:
        """Rebuild state from its JSON form.

        Raises:
            StateCorrupt: if the payload is structurally invalid.
        """
        if not isinstance(data, dict):
            raise StateCorrupt("state payload is not an object")
        ranked = data.get("ranked_instruments")
        if not isinstance(ranked, list):
            raise StateCorrupt("ranked_instruments is not a list")
        whitelist = data.get("whitelist", [])
        if not isinstance(whitelist, list) or not all(isinstance(s, str) for s in whitelist):
            raise StateCorrupt("whitelist is not a list of symbols")
        cache = data.get("signal_alert_cache", {})
        if not isinstance(cache, dict):
            raise StateCorrupt("signal_alert_cache is not an object")

        try:
            return cls(
                timestamp=str(data["timestamp"]),
                ranked_instruments=tuple(InstrumentSnapshot.from_dict(s) for s in ranked),
                whitelist=tuple(BaseSymbol(s) for s in whitelist),
                signal_alert_cache=SignalAlertCache.from_dict(cache),
            )
        except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError) as e:
            raise StateCorrupt(f"invalid cycle state: {e}") from e
