"""Local quote store package."""

from .models import (
    Record,
    RecordOrigin,
    RemoteType,
    QuotePayload,
    ImportResult
)

from .errors import (
    QuoteSyncError,
    ValidationError,
    PersistenceError,
    ParseError,
    NetworkError
)

from .database import (
    DatabaseManager,
    SlotRepository,
    SessionSlots
)

from .record_store import (
    RecordStore,
    ALL_CATEGORIES,
    EXPORT_FILENAME,
    default_seed
)

__all__ = [
    # Models
    "Record",
    "RecordOrigin",
    "RemoteType",
    "QuotePayload",
    "ImportResult",

    # Errors
    "QuoteSyncError",
    "ValidationError",
    "PersistenceError",
    "ParseError",
    "NetworkError",

    # Storage
    "DatabaseManager",
    "SlotRepository",
    "SessionSlots",

    # Store
    "RecordStore",
    "ALL_CATEGORIES",
    "EXPORT_FILENAME",
    "default_seed"
]
