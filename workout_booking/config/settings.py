"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode runs the whole service against an in-memory database.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SECRET_KEY = "dev-secret-change-me"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Workout Booking API"
    api_version: str = "v1"

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./workout_booking.db",
        description="SQLAlchemy database URL. SQLite and PostgreSQL are supported."
    )
    database_mock_mode: bool = Field(
        default=False,
        description="Use a shared in-memory SQLite database. Enables local dev without a DB file."
    )
    database_echo: bool = Field(
        default=False,
        description="Log every SQL statement. Only useful while debugging queries."
    )

    # Identity
    auth_secret_key: str = Field(
        default=DEFAULT_SECRET_KEY,
        description="Secret used to verify bearer tokens issued by the identity provider."
    )
    auth_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm shared with the identity provider."
    )

    # Booking policy
    booking_lead_minutes: int = Field(
        default=30,
        description="Minimum gap between now and the start of a new booking."
    )
    cancellation_cutoff_hours: int = Field(
        default=12,
        description="Minimum gap between now and the start of a workout being cancelled."
    )
    lifecycle_sweep_minutes: int = Field(
        default=0,
        description="Interval for the periodic lifecycle sweep. 0 keeps promotion read-triggered only."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def effective_database_url(self) -> str:
        """Database URL after applying mock mode."""
        if self.database_mock_mode:
            return "sqlite://"
        return self.database_url

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set.

        Returns list of missing or unsafe fields.
        This is separate from Pydantic validation because the
        development defaults are valid values, just not safe ones.
        """
        missing = []

        if not self.auth_secret_key or self.auth_secret_key == DEFAULT_SECRET_KEY:
            missing.append("AUTH_SECRET_KEY")

        if not self.database_mock_mode and not self.database_url:
            missing.append("DATABASE_URL")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
