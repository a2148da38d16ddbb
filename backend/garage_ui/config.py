"""Application configuration."""
from collections import Counter
from functools import lru_cache
import math

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Garage UI"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3980", "http://localhost:5173"]

    # Database
    database_url: str = "sqlite:///./garage-ui.db"

    # Auth
    secret_key: str
    algorithm: str = "HS256"
    token_issuer: str = "http://localhost:3980"
    access_token_expire_seconds: int = 900
    refresh_token_expire_seconds: int = 7200
    session_sweep_interval_seconds: int = 3600

    # Account recovery
    app_base_url: str = "http://localhost:3980"
    password_reset_expire_seconds: int = 3600
    email_change_expire_seconds: int = 86400

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, value: str) -> str:
        """Fail closed if SECRET_KEY is weak or placeholder quality."""
        if not value:
            raise ValueError("SECRET_KEY must be set.")

        if len(value) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")

        weak_values = {"changeme", "changeme-in-production", "secret", "password", "test"}
        lowered = value.lower()
        if lowered in weak_values or "changeme" in lowered:
            raise ValueError("SECRET_KEY must not be a placeholder value.")

        counts = Counter(value)
        entropy_per_char = -sum((count / len(value)) * math.log2(count / len(value)) for count in counts.values())
        estimated_entropy_bits = entropy_per_char * len(value)
        if estimated_entropy_bits < 100:
            raise ValueError("SECRET_KEY entropy is too low; use a cryptographically random value.")

        return value

    @field_validator(
        "access_token_expire_seconds",
        "refresh_token_expire_seconds",
        "password_reset_expire_seconds",
        "email_change_expire_seconds",
    )
    @classmethod
    def validate_positive_lifetime(cls, value: int) -> int:
        """Token lifetimes must be positive."""
        if value <= 0:
            raise ValueError("Token lifetimes must be greater than zero.")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
