"""Remote client factory for creating appropriate client instances."""

from typing import Dict, List, Optional, Type, Union

from ..config.settings import RemoteSettings, get_settings
from ..store.models import RemoteType
from .base import BaseRemoteClient
from .jsonplaceholder import JSONPlaceholderClient


class RemoteClientFactory:
    """Factory for creating remote client instances."""

    _client_classes: Dict[RemoteType, Type[BaseRemoteClient]] = {
        RemoteType.JSONPLACEHOLDER: JSONPlaceholderClient,
    }

    @classmethod
    def create_client(
        cls,
        remote_type: Optional[Union[RemoteType, str]] = None,
        remote_settings: Optional[RemoteSettings] = None,
        **kwargs
    ) -> BaseRemoteClient:
        """Create a remote client instance.

        Args:
            remote_type: Type of remote server, defaults to the configured one
            remote_settings: Remote configuration, defaults to global settings
            **kwargs: Additional parameters passed to the client

        Returns:
            Configured remote client instance

        Raises:
            ValueError: If the remote type is not supported
        """
        remote_settings = remote_settings or get_settings().remote
        remote_type = remote_type or remote_settings.remote_type

        try:
            remote_type = RemoteType(remote_type)
        except ValueError:
            raise ValueError(f"Unsupported remote type: {remote_type}")

        if remote_type not in cls._client_classes:
            raise ValueError(f"Unsupported remote type: {remote_type}")

        client_class = cls._client_classes[remote_type]

        options = {
            "base_url": remote_settings.base_url,
            "timeout_seconds": remote_settings.timeout_seconds,
        }
        if remote_type == RemoteType.JSONPLACEHOLDER:
            options.update({
                "fetch_limit": remote_settings.fetch_limit,
                "default_user_id": remote_settings.default_user_id
            })
        options.update(kwargs)

        return client_class(**options)

    @classmethod
    def get_supported_types(cls) -> List[RemoteType]:
        """Get list of supported remote types."""
        return list(cls._client_classes.keys())
