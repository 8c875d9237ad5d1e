"""Configuration package for quote sync."""

from .settings import (
    StoreSettings,
    RemoteSettings,
    SchedulingSettings,
    NotificationSettings,
    LoggingSettings,
    ServerSettings,
    AppSettings,
    get_settings,
    reload_settings
)

from .loader import (
    ConfigurationError,
    load_seed_records
)

__all__ = [
    "StoreSettings",
    "RemoteSettings",
    "SchedulingSettings",
    "NotificationSettings",
    "LoggingSettings",
    "ServerSettings",
    "AppSettings",
    "get_settings",
    "reload_settings",

    "ConfigurationError",
    "load_seed_records"
]
