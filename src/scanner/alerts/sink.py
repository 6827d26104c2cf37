"""Alert delivery interface.

The scan pipeline hands abstract AlertEvents to an AlertSink and never
formats message text. ``deliver`` reports whether the alert actually went
out; the single-signal cache is only updated on success.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from scanner.logging import get_logger
from scanner.models import AlertEvent

logger = get_logger(__name__)


class AlertSink(ABC):
    """Abstract base class for alert destinations."""

    @abstractmethod
    async def deliver(self, event: AlertEvent) -> bool:
        """Deliver one alert. Returns True on success."""
        ...


class LoggingAlertSink(AlertSink):
    """Sink that emits alerts as structured log events."""

    async def deliver(self, event: AlertEvent) -> bool:
        logger.info(
            "alert",
            kind=event.kind.value,
            symbols=list(event.symbols),
            reason=event.reason,
            timeframes=[tf.value for tf in event.timeframes],
            score=str(event.score) if event.score is not None else None,
            silent=event.silent,
        )
        return True


def is_quiet_hours(
    now: datetime,
    start_hour: int = 23,
    end_hour: int = 1,
    utc_offset_hours: int = 7,
) -> bool:
    """Whether ``now`` falls in the quiet window at the given UTC offset.

    The window is [start_hour, end_hour) in local time and may wrap past
    midnight. Equal start and end disables quiet hours.
    """
    if start_hour == end_hour:
        return False
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_hour = now.astimezone(timezone(timedelta(hours=utc_offset_hours))).hour
    if start_hour < end_hour:
        return start_hour <= local_hour < end_hour
    return local_hour >= start_hour or local_hour < end_hour
