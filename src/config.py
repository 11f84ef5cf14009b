"""Configuration for the application."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StatsCacheConfig(BaseSettings):
    """Eviction policy of the in-process recipient stats cache."""

    model_config = SettingsConfigDict(env_prefix="STATS_CACHE_", env_file=".env", extra="ignore")

    max_entries: int | None = Field(
        default=10_000, ge=1, description="Maximum tracked recipients before LRU eviction (None = unbounded)"
    )
    idle_ttl_seconds: int | None = Field(
        default=172_800,
        ge=1,
        description=(
            "Evict recipients untouched for this long (None = never). Eviction forgets the last send "
            "time too, so keep it above the longest minIntervalMinutes of any rule"
        ),
    )


class DatabaseConfig(BaseSettings):
    """Configuration for the rule store database."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore")

    url: str = Field(default="sqlite:///./notification_rules.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL statements")


class DispatchConfig(BaseSettings):
    """Defaults used when neither the rule nor the variables name a value."""

    model_config = SettingsConfigDict(env_prefix="DISPATCH_", env_file=".env", extra="ignore")

    default_subject: str = Field(default="Notification", description="Fallback email subject")
    default_sender_name: str = Field(default="Notification Service", description="Fallback sender name")
    default_network_id: str = Field(default="default", description="Fallback broadcast network")


class LoggingConfig(BaseSettings):
    """Configuration for loguru sinks."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = Field(default="INFO", description="Minimum console log level")
    file: str | None = Field(default=None, description="Optional log file path")
    rotation: str = Field(default="100 MB", description="File sink rotation")
    retention: str = Field(default="30 days", description="File sink retention")


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    stats_cache: StatsCacheConfig = Field(default_factory=StatsCacheConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
