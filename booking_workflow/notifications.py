"""User-facing notification channel.

Every outcome the user must see (validation problems, lookup failures,
booking results) goes through a single notify(title, message, severity) call.
The host decides how to render it.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Protocol

from booking_workflow.logging_config import get_logger

logger = get_logger(__name__)


class Severity(str, Enum):
    """Notification severities."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Notifier(Protocol):
    """Anything that can show a notification to the user."""

    def notify(self, title: str, message: str, severity: Severity) -> None:
        ...


class LoggingNotifier:
    """Default notifier for headless hosts: writes notifications to the log."""

    def notify(self, title: str, message: str, severity: Severity) -> None:
        log = logger.error if severity == Severity.ERROR else logger.info
        log("user_notification", title=title, message=message, severity=severity.value)


@dataclass
class Notification:
    """A recorded notification."""
    title: str
    message: str
    severity: Severity


class RecordingNotifier:
    """Keeps notifications in memory (terminal host, tests)."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, title: str, message: str, severity: Severity) -> None:
        self.notifications.append(Notification(title, message, severity))

    def messages(self, severity: Severity = None) -> List[str]:
        return [
            n.message for n in self.notifications
            if severity is None or n.severity == severity
        ]

    def clear(self):
        self.notifications.clear()
