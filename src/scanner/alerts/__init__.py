"""Alert sinks and quiet-hours handling."""

from scanner.alerts.sink import AlertSink, LoggingAlertSink, is_quiet_hours

__all__ = ["AlertSink", "LoggingAlertSink", "is_quiet_hours"]
