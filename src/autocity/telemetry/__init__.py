"""Events, notifications and logging setup."""

from .events import (
    ADVISORY_UNAVAILABLE,
    PLAN_COMPLETED,
    STRUCTURE_PLACED,
    TICK_COMPLETED,
    EventBus,
    RecordingTelemetry,
)
from .logging import Telemetry, configure_logging
from .notifications import LoggingNotificationSink, NotificationSink, RecordingNotificationSink, Severity

__all__ = [
    "ADVISORY_UNAVAILABLE",
    "PLAN_COMPLETED",
    "STRUCTURE_PLACED",
    "TICK_COMPLETED",
    "EventBus",
    "LoggingNotificationSink",
    "NotificationSink",
    "RecordingNotificationSink",
    "RecordingTelemetry",
    "Severity",
    "Telemetry",
    "configure_logging",
]
