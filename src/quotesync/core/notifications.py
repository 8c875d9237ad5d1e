"""Transient status notifications."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..utils.logging import get_logger


class Severity(str, Enum):
    """Notification severity levels."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    """A status message and when it stops being visible."""

    message: str
    severity: Severity
    shown_at: float
    expires_at: float


class NotificationSink(ABC):
    """Output port for user-visible status messages."""

    @abstractmethod
    def display(self, message: str, severity: Severity = Severity.INFO) -> None:
        """Show ``message``, replacing whatever is currently shown."""
        pass


class TimedNotificationSink(NotificationSink):
    """Single-slot notification area that clears itself after a fixed window.

    A new message overwrites the visible one and restarts the window. There
    is no queue and no history.
    """

    def __init__(self, display_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.display_seconds = display_seconds
        self.clock = clock
        self.logger = get_logger(self.__class__.__name__)
        self._current: Optional[Notification] = None

    def display(self, message: str, severity: Severity = Severity.INFO) -> None:
        now = self.clock()
        self._current = Notification(
            message=message,
            severity=Severity(severity),
            shown_at=now,
            expires_at=now + self.display_seconds
        )

        if self._current.severity == Severity.ERROR:
            self.logger.warning("Notification", message=message, severity=self._current.severity.value)
        else:
            self.logger.info("Notification", message=message, severity=self._current.severity.value)

    @property
    def current(self) -> Optional[Notification]:
        """The visible notification, or None once its window has passed."""
        if self._current is not None and self.clock() >= self._current.expires_at:
            self._current = None
        return self._current

    def clear(self) -> None:
        self._current = None
