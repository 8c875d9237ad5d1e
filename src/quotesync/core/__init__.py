"""Core sync logic package."""

from .notifications import Notification, NotificationSink, Severity, TimedNotificationSink
from .sync_engine import SyncEngine, SyncOutcome, SyncResult
from .controller import QuoteController, QuoteView, NullView

__all__ = [
    "Notification",
    "NotificationSink",
    "Severity",
    "TimedNotificationSink",
    "SyncEngine",
    "SyncOutcome",
    "SyncResult",
    "QuoteController",
    "QuoteView",
    "NullView"
]
