"""Application settings and configuration.

This module defines all configuration options for the Quorum application.
Settings are loaded from environment variables with sensible defaults; the
JWT signing secret has no default and must be provided.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    A missing or blank ``JWT_SECRET`` fails validation, which aborts startup.
    """

    # Application metadata
    app_name: str = Field(default="Quorum", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session tokens
    secret_key: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_hours: int = Field(default=72, alias="ACCESS_TOKEN_EXPIRE_HOURS")
    jwt_leeway_seconds: int = Field(default=30, alias="JWT_LEEWAY_SECONDS")

    # Local credentials
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, alias="BCRYPT_ROUNDS")

    # Database configuration
    database_url: str = Field(default="sqlite:///./quorum.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Federated identity providers
    google_tokeninfo_url: str = Field(
        default="https://oauth2.googleapis.com/tokeninfo",
        alias="GOOGLE_TOKENINFO_URL",
    )
    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")
    apple_keys_url: str = Field(
        default="https://appleid.apple.com/auth/keys",
        alias="APPLE_KEYS_URL",
    )
    apple_issuer: str = Field(default="https://appleid.apple.com", alias="APPLE_ISSUER")
    apple_client_id: str | None = Field(default=None, alias="APPLE_CLIENT_ID")
    apple_keys_cache_seconds: int = Field(default=3600, alias="APPLE_KEYS_CACHE_SECONDS")
    apple_keys_retry_seconds: float = Field(default=30.0, ge=0, alias="APPLE_KEYS_RETRY_SECONDS")
    provider_timeout_seconds: float = Field(default=5.0, alias="PROVIDER_TIMEOUT_SECONDS")

    # Bounded retries for insert-time uniqueness conflicts
    max_conflict_retries: int = Field(default=3, ge=1, alias="MAX_CONFLICT_RETRIES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Accept", "Authorization", "Content-Type", "X-Requested-With"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Reject blank signing secrets."""
        if not v.strip():
            raise ValueError("JWT_SECRET must be a non-empty string")
        return v

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
