"""Configuration management for jobharness.

Uses Pydantic Settings for type-safe, environment-based configuration.
"""

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv(override=False)


class Settings(BaseSettings):
    """Harness settings with environment variable support."""

    environment: str = Field("development", alias="JOBHARNESS_ENVIRONMENT")

    # Logging configuration
    log_level: str = Field("INFO", alias="JOBHARNESS_LOG_LEVEL")
    log_format: str = Field("text", alias="JOBHARNESS_LOG_FORMAT")  # text or json

    # Redis configuration (used only by the real submission path)
    redis_url: str = Field("redis://localhost:6379/0", alias="JOBHARNESS_REDIS_URL")
    redis_connection_timeout: int = Field(5, alias="JOBHARNESS_REDIS_CONNECTION_TIMEOUT")
    redis_socket_timeout: int = Field(5, alias="JOBHARNESS_REDIS_SOCKET_TIMEOUT")
    redis_namespace: str | None = Field(None, alias="JOBHARNESS_REDIS_NAMESPACE")

    # Harness behaviour
    testing_mode: str = Field("fake", alias="JOBHARNESS_TESTING_MODE")
    default_queue: str = Field("default", alias="JOBHARNESS_DEFAULT_QUEUE")
    jid_bytes: int = Field(12, alias="JOBHARNESS_JID_BYTES")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["text", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment setting."""
        valid_environments = ["development", "test", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("testing_mode")
    @classmethod
    def validate_testing_mode(cls, v: str) -> str:
        """Validate the initial testing mode."""
        valid_modes = ["disabled", "fake", "inline"]
        mode = v.strip().lower()
        if mode == "disable":
            mode = "disabled"
        if mode not in valid_modes:
            raise ValueError(f"Testing mode must be one of: {valid_modes}")
        return mode

    @field_validator("default_queue")
    @classmethod
    def validate_default_queue(cls, v: str) -> str:
        """Reject blank queue names."""
        if not v.strip():
            raise ValueError("Default queue name must not be empty")
        return v.strip()

    @field_validator("jid_bytes")
    @classmethod
    def validate_jid_bytes(cls, v: int) -> int:
        if v < 4:
            raise ValueError("jid_bytes must be at least 4")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra environment variables instead of forbidding them
    )


def get_settings() -> Settings:
    """Build a fresh settings object from the environment."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance - will be created when first accessed
settings = None


def get_settings_instance() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global settings  # noqa: PLW0603
    if settings is None:
        settings = get_settings()
    return settings


def reset_settings() -> None:
    """Drop the cached settings instance (for testing only)."""
    global settings  # noqa: PLW0603
    settings = None
