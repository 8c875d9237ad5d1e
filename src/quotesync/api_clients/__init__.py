"""Remote clients package for quote server integrations."""

from .base import (
    BaseRemoteClient,
    RateLimitError,
    APIConnectionError,
    RemoteFormatError
)

from .jsonplaceholder import JSONPlaceholderClient
from .factory import RemoteClientFactory

__all__ = [
    # Base classes and exceptions
    "BaseRemoteClient",
    "RateLimitError",
    "APIConnectionError",
    "RemoteFormatError",

    # Client implementations
    "JSONPlaceholderClient",

    # Factory
    "RemoteClientFactory"
]
