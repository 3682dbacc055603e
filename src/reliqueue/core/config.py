"""Configuration management using Pydantic settings."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reliqueue.core.exceptions import ConfigError

ONE_HOUR = 60 * 60
ONE_MINUTE = 60


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RedisSettings(BaseSettings):
    """Redis connection settings."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    url: SecretStr = Field(
        default=SecretStr("redis://localhost:6379/0"),
        description="Redis connection URL",
    )
    max_connections: int = Field(default=50, ge=1)
    socket_timeout: float = Field(default=5.0, gt=0)
    socket_connect_timeout: float = Field(default=5.0, gt=0)
    scan_count: int = Field(
        default=100,
        ge=1,
        description="COUNT hint passed to SSCAN during recovery",
    )


class QueueSettings(BaseSettings):
    """Defaults applied to queues built without explicit options."""

    model_config = SettingsConfigDict(env_prefix="QUEUE_")

    delim: str = Field(default=":", min_length=1)
    timeout: int = Field(
        default=ONE_HOUR,
        ge=1,
        description="Lock TTL in seconds",
    )
    recover_timeout: float = Field(
        default=ONE_MINUTE,
        ge=0,
        description="Minimum seconds between recovery passes",
    )


class ObservabilitySettings(BaseSettings):
    """Observability settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: Literal["json", "console"] = Field(default="json")
    metrics_enabled: bool = Field(default=True)
    service_name: str = Field(default="reliqueue")
    log_value_max_length: int = Field(default=200, ge=16)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="RELIQUEUE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    redis: RedisSettings = Field(default_factory=RedisSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def load(cls) -> Settings:
        """Load settings from environment."""
        return cls()


class QueueOptions(BaseModel):
    """
    Validated options for a single queue instance.

    Key layout derived from these options:
    - main list at ``key``
    - recovery set at ``recover_key``
    - transactions at ``recover_key + delim + <id>``
    - locks at ``<transaction key> + delim + "lock"``
    - dead letters at ``dead_key``
    """

    key: str = Field(..., min_length=1)
    delim: str = Field(default=":", min_length=1)
    dead_key: str | None = Field(default=None, min_length=1)
    recover_key: str | None = Field(default=None, min_length=1)
    timeout: int = Field(default=ONE_HOUR, ge=1)
    recover_timeout: float = Field(default=ONE_MINUTE, ge=0)

    @model_validator(mode="after")
    def default_recover_key(self) -> QueueOptions:
        """Derive the recovery index key from the queue key."""
        if self.recover_key is None:
            self.recover_key = f"{self.key}{self.delim}tx"
        return self

    @classmethod
    def build(cls, **options: object) -> QueueOptions:
        """
        Validate options, filling unset values from settings.

        Raises:
            ConfigError: If an option is missing or invalid.
        """
        defaults = get_settings().queue
        values = {
            "delim": defaults.delim,
            "timeout": defaults.timeout,
            "recover_timeout": defaults.recover_timeout,
        }
        values.update({k: v for k, v in options.items() if v is not None})

        if not values.get("key"):
            raise ConfigError("Queue requires a key")

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(
                "Invalid queue options",
                details={
                    ".".join(str(p) for p in err["loc"]): err["msg"]
                    for err in e.errors()
                },
            ) from e

    def transaction_key(self, transaction_id: str) -> str:
        """Key of the single-element list holding an in-flight value."""
        return f"{self.recover_key}{self.delim}{transaction_id}"

    def lock_key(self, transaction_key: str) -> str:
        """Key of the lock guarding a transaction."""
        return f"{transaction_key}{self.delim}lock"


# Global settings instance (lazy loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def configure_settings(settings: Settings | None) -> None:
    """Configure the global settings instance (for testing)."""
    global _settings
    _settings = settings
