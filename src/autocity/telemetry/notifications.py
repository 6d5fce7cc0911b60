"""Notification sinks for player-facing messages."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationSink(Protocol):
    """Fire-and-forget destination for short status messages."""

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        """Show or record one message."""


_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class LoggingNotificationSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("autocity.notifications")

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        level = Severity(severity)
        self._logger.log(_LEVELS[level], message, extra={"severity": level.value})


class RecordingNotificationSink:
    def __init__(self) -> None:
        self.messages: list[tuple[str, Severity]] = []

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        self.messages.append((message, Severity(severity)))
