from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PREFIX = "@upstash/ratelimit"


class Settings(BaseSettings):
    """Rate limiter settings loaded from environment variables.

    All settings can be configured via RATELIMIT_* environment variables
    or a .env file. Builder calls override them.
    """

    # Shared store
    redis_url: str = "redis://localhost:6379/0"

    # Key namespace, shared with the JavaScript library of the same design
    prefix: str = DEFAULT_PREFIX

    # Fail-open bound for a single store round trip, in milliseconds.
    # None blocks until the store answers or errors.
    timeout_ms: int | None = None

    # Record admitted/denied counts per identifier
    analytics: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("prefix")
    @classmethod
    def default_empty_prefix(cls, v: str) -> str:
        """Treat a blank prefix as the default namespace."""
        v = v.strip()
        return v or DEFAULT_PREFIX

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout_positive(cls, v: int | None) -> int | None:
        """Validate timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError("timeout_ms must be positive")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    model_config = SettingsConfigDict(env_prefix="RATELIMIT_", env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
