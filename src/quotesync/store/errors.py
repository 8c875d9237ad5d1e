"""Exception hierarchy for the quote store and sync engine."""


class QuoteSyncError(Exception):
    """Base exception for quote sync errors."""
    pass


class ValidationError(QuoteSyncError):
    """Raised when a quote is missing required fields."""
    pass


class PersistenceError(QuoteSyncError):
    """Raised when the durable slot cannot be read or written."""
    pass


class ParseError(QuoteSyncError):
    """Raised when persisted or imported JSON is malformed."""
    pass


class NetworkError(QuoteSyncError):
    """Base class for remote server failures."""
    pass
