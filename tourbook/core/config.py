"""Configuration settings for the booking/review coordination service."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with Pydantic validation."""

    # Remote store settings
    remote_api_url: str = Field(
        default="http://localhost:3000/api/v1",
        description="Base URL of the remote tour/booking/review REST API"
    )

    remote_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to every remote API request"
    )

    # Environment settings
    environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Application log level"
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3001", "http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Server host"
    )

    port: int = Field(
        default=8000,
        description="Server port"
    )

    # Session settings
    session_ttl_seconds: int = Field(
        default=1800,
        description="Idle time after which a user's coordination session is dropped"
    )

    session_cache_size: int = Field(
        default=1000,
        description="Maximum number of concurrent user sessions kept in memory"
    )

    session_sweep_interval_seconds: int = Field(
        default=60,
        description="How often expired sessions are swept"
    )

    # Coordination settings
    await_booking_sync: bool = Field(
        default=True,
        description="Wait for the booking-status sync task before returning a review result"
    )

    # Tracing settings
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP collector endpoint; tracing export is disabled when unset"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_environments = ["development", "staging", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("remote_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the remote base URL so paths can be joined with a leading slash."""
        return v.rstrip("/")

    @property
    def debug(self) -> bool:
        """Return True if in development mode."""
        return self.environment == "development"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Global settings instance
settings = Settings()
