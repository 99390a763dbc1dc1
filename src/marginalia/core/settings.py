"""Application settings and configuration.

This module defines all configuration options for the Marginalia service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Marginalia", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./marginalia.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Tokens are issued by the external authentication service
    auth_secret_key: str = Field(default="change-me", alias="AUTH_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Image storage and quotas
    images_path: str = Field(default="./images", alias="IMAGES_PATH")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    max_image_size: int = Field(default=5 * 1024 * 1024, alias="MAX_IMAGE_SIZE")
    max_total_image_size: int = Field(
        default=200 * 1024 * 1024,
        alias="MAX_TOTAL_IMAGE_SIZE",
    )
    max_images_per_user: int = Field(default=100, alias="MAX_IMAGES_PER_USER")

    # Unused image garbage collection
    image_reaper_enabled: bool = Field(default=True, alias="IMAGE_REAPER_ENABLED")
    image_retention_hours: int = Field(default=24, alias="IMAGE_RETENTION_HOURS")
    image_sweep_interval_seconds: float = Field(
        default=24 * 60 * 60,
        alias="IMAGE_SWEEP_INTERVAL_SECONDS",
    )

    # Answer tree rendering
    question_replies_depth: int = Field(default=2, alias="QUESTION_REPLIES_DEPTH")
    answer_replies_depth: int = Field(default=1, alias="ANSWER_REPLIES_DEPTH")

    # Pseudonym allocation
    alias_max_attempts: int = Field(default=10, alias="ALIAS_MAX_ATTEMPTS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def image_retention_seconds(self) -> float:
        """Return the image retention window in seconds."""
        return float(self.image_retention_hours) * 3600.0


settings = Settings()
