"""Base remote client interface and common functionality."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..store.errors import NetworkError
from ..store.models import Record
from ..utils.logging import get_logger


class BaseRemoteClient(ABC):
    """Abstract base class for remote quote servers.

    ``fetch`` and ``create`` are best-effort: they never raise to callers.
    Subclasses implement ``_fetch_records`` and ``_create_record`` and may
    raise freely; the base converts failures into an empty list or False
    and keeps the message in ``last_error``.
    """

    def __init__(self, base_url: str, timeout_seconds: float = 10.0, **kwargs):
        """Initialize the remote client.

        Args:
            base_url: Root URL of the remote server
            timeout_seconds: Total timeout for a single request
            **kwargs: Additional configuration parameters
        """
        self.base_url = base_url.rstrip('/')
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger(self.__class__.__name__)
        self.last_error: Optional[str] = None

    @abstractmethod
    async def _fetch_records(self) -> List[Record]:
        """Read the remote quote list."""
        pass

    @abstractmethod
    async def _create_record(self, record: Record) -> None:
        """Write one quote to the remote server."""
        pass

    async def fetch(self) -> List[Record]:
        """Fetch quotes from the remote server.

        Returns:
            Remote records, or an empty list on any transport or format error
        """
        try:
            records = await self._fetch_records()
        except (NetworkError, asyncio.TimeoutError) as e:
            self._record_failure("fetch", e)
            return []
        except Exception as e:
            self._record_failure("fetch", e, unexpected=True)
            return []

        self.last_error = None
        self.logger.info("Fetched quotes from server", count=len(records))
        return records

    async def create(self, record: Record) -> bool:
        """Send a new quote to the remote server.

        Returns:
            True if the server accepted the quote, False otherwise
        """
        try:
            await self._create_record(record)
        except (NetworkError, asyncio.TimeoutError) as e:
            self._record_failure("create", e)
            return False
        except Exception as e:
            self._record_failure("create", e, unexpected=True)
            return False

        self.last_error = None
        return True

    async def close(self) -> None:
        """Release transport resources."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def get_sync_info(self) -> Dict[str, Any]:
        """Get information about the remote endpoint."""
        return {
            "client_type": self.__class__.__name__,
            "base_url": self.base_url,
            "timeout_seconds": self.timeout_seconds,
            "last_error": self.last_error
        }

    def _record_failure(self, operation: str, error: BaseException, unexpected: bool = False) -> None:
        self.last_error = str(error) or error.__class__.__name__
        log = self.logger.error if unexpected else self.logger.warning
        log(
            "Remote request failed",
            operation=operation,
            error_type=error.__class__.__name__,
            error=self.last_error
        )


class RateLimitError(NetworkError):
    """Raised when the remote rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class APIConnectionError(NetworkError):
    """Raised when the remote server cannot be reached or returns an error status."""
    pass


class RemoteFormatError(NetworkError):
    """Raised when the remote response body is not in the expected shape."""
    pass
