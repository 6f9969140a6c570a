"""Configuration management using pydantic-settings.

Settings are read from environment variables prefixed with ``BITTORRENT_BOT_``
and from an optional ``.env`` file. Sensitive values use SecretStr so they
never end up in logs.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Required settings are missing or the daemon endpoint cannot be determined."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Required fields raise ValidationError if not provided.
    """

    model_config = SettingsConfigDict(
        env_prefix="BITTORRENT_BOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Required: Telegram Bot Configuration
    bot_token: SecretStr = Field(
        ...,
        description="Telegram bot token from @BotFather",
    )

    user_id: str = Field(
        ...,
        description="Comma-separated Telegram user ids allowed to add torrents",
    )

    # Required: qBittorrent Web UI credentials
    username: str = Field(
        ...,
        description="qBittorrent Web UI username",
    )

    password: SecretStr = Field(
        ...,
        description="qBittorrent Web UI password",
    )

    # Optional: qBittorrent endpoint (discovered from the gateway in containers)
    url: str | None = Field(
        default=None,
        description="qBittorrent Web UI base URL (e.g., http://192.168.1.10:8080/)",
    )

    daemon_port: int = Field(
        default=8080,
        description="Web UI port used when the endpoint is discovered from the gateway",
        ge=1,
        le=65535,
    )

    # Optional: chat phrase that stops the bot
    shutdown_phrase: str | None = Field(
        default=None,
        description="Text message that makes the bot stop polling and exit",
    )

    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for every HTTP request to the daemon",
        gt=0,
    )

    shutdown_poll_interval: float = Field(
        default=1.0,
        description="How often the polling loop checks the shutdown flag, in seconds",
        gt=0,
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    environment: str = Field(
        default="production",
        description="Environment name (development, production)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is development or production."""
        allowed = {"development", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @field_validator("url", "shutdown_phrase")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def get_safe_dict(self) -> dict[str, str | int | float | None]:
        """Get configuration as dict with sensitive values masked.

        Returns:
            Dictionary with SecretStr values shown as '***'
        """
        result = {}
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)

            if isinstance(value, SecretStr):
                result[field_name] = "***"
            else:
                result[field_name] = value

        return result


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"Invalid or missing settings: {missing}") from e
