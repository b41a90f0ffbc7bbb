"""Application settings and configuration.

This module defines all configuration options for the Campus Feed service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql",
    "sqlite+aiosqlite": "sqlite",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Campus Feed", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(default="dev-secret-change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./campus_feed.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # RSVP ledger
    enforce_capacity: bool = Field(default=False, alias="ENFORCE_CAPACITY")
    rsvp_max_retries: int = Field(default=5, ge=1, alias="RSVP_MAX_RETRIES")
    my_events_limit: int = Field(default=50, ge=1, alias="MY_EVENTS_LIMIT")

    # Feed assembly
    feed_default_limit: int = Field(default=50, ge=1, alias="FEED_DEFAULT_LIMIT")
    feed_max_limit: int = Field(default=100, ge=1, alias="FEED_MAX_LIMIT")
    # Events starting (announcements created) earlier than this many days ago
    # drop out of the feed; 0 disables the window.
    feed_window_days: int = Field(default=30, ge=0, alias="FEED_WINDOW_DAYS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return the database URL with async drivers swapped for their sync defaults.

        Alembic migrations always run over a synchronous connection.
        """
        url = self.effective_database_url
        for async_driver, sync_driver in _SYNC_DRIVERS.items():
            if url.startswith(async_driver):
                return url.replace(async_driver, sync_driver, 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
