"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Local quote store configuration."""

    database_url: str = Field(default="sqlite:///./data/quotesync.db")
    seed_path: Optional[str] = Field(default=None)  # YAML/JSON seed file, None = built-in quotes
    category_case_sensitive: bool = Field(default=True)

    model_config = SettingsConfigDict(env_prefix="QUOTESYNC_STORE_")


class RemoteSettings(BaseSettings):
    """Remote quote server configuration."""

    remote_type: str = Field(default="jsonplaceholder")
    base_url: str = Field(default="https://jsonplaceholder.typicode.com")
    fetch_limit: int = Field(default=10)
    timeout_seconds: float = Field(default=10.0)
    default_user_id: int = Field(default=1)

    model_config = SettingsConfigDict(env_prefix="QUOTESYNC_REMOTE_")


class SchedulingSettings(BaseSettings):
    """Periodic sync configuration."""

    enabled: bool = Field(default=True)
    sync_interval_seconds: float = Field(default=30.0)
    initial_delay_seconds: float = Field(default=2.0)

    model_config = SettingsConfigDict(env_prefix="QUOTESYNC_SCHEDULE_")


class NotificationSettings(BaseSettings):
    """Status notification configuration."""

    display_seconds: float = Field(default=5.0)

    model_config = SettingsConfigDict(env_prefix="QUOTESYNC_NOTIFY_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file_path: Optional[str] = Field(default="./logs/quotesync.log")

    model_config = SettingsConfigDict(env_prefix="QUOTESYNC_LOG_")


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    model_config = SettingsConfigDict(env_prefix="QUOTESYNC_SERVER_")


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="Quote Sync")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    store: StoreSettings = Field(default_factory=StoreSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    scheduling: SchedulingSettings = Field(default_factory=SchedulingSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    model_config = SettingsConfigDict(
        env_prefix="QUOTESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings


def reload_settings() -> AppSettings:
    """Rebuild settings from the current environment, e.g. after loading a .env file."""
    global settings
    settings = AppSettings()
    return settings
