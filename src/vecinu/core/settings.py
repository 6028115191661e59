"""Application settings and configuration.

This module defines all configuration options for the Vecinu application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    Optional collaborators (Redis, identity provider, object storage) are
    disabled when their URL is left unset.
    """

    # Application metadata
    app_name: str = Field(default="Vecinu", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Public origin of the web front end; used for the CSRF origin check.
    app_url: str | None = Field(default=None, alias="APP_URL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./vecinu.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the feed cache and the rate limiter
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Cache lifetimes
    feed_cache_ttl_seconds: int = Field(default=300, alias="FEED_CACHE_TTL_SECONDS")
    post_cache_ttl_seconds: int = Field(default=600, alias="POST_CACHE_TTL_SECONDS")

    # Cursor pagination
    pagination_default_limit: int = Field(default=20, alias="PAGINATION_DEFAULT_LIMIT")
    pagination_max_limit: int = Field(default=50, alias="PAGINATION_MAX_LIMIT")

    # Sliding-window rate limits (requests per window)
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_auth_requests: int = Field(default=5, alias="RATE_LIMIT_AUTH_REQUESTS")
    rate_limit_auth_window_seconds: int = Field(
        default=15 * 60,
        alias="RATE_LIMIT_AUTH_WINDOW_SECONDS",
    )
    rate_limit_posts_requests: int = Field(default=10, alias="RATE_LIMIT_POSTS_REQUESTS")
    rate_limit_posts_window_seconds: int = Field(
        default=60 * 60,
        alias="RATE_LIMIT_POSTS_WINDOW_SECONDS",
    )
    rate_limit_comments_requests: int = Field(default=30, alias="RATE_LIMIT_COMMENTS_REQUESTS")
    rate_limit_comments_window_seconds: int = Field(
        default=60 * 60,
        alias="RATE_LIMIT_COMMENTS_WINDOW_SECONDS",
    )
    rate_limit_api_requests: int = Field(default=100, alias="RATE_LIMIT_API_REQUESTS")
    rate_limit_api_window_seconds: int = Field(default=60, alias="RATE_LIMIT_API_WINDOW_SECONDS")

    # Identity provider (GoTrue-compatible REST API)
    identity_url: str | None = Field(default=None, alias="IDENTITY_URL")
    identity_anon_key: str | None = Field(default=None, alias="IDENTITY_ANON_KEY")
    identity_jwt_secret: str = Field(
        default="dev-identity-jwt-secret-change-me",
        alias="IDENTITY_JWT_SECRET",
    )
    identity_timeout_seconds: float = Field(default=15.0, alias="IDENTITY_TIMEOUT_SECONDS")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str = Field(default="authenticated", alias="JWT_AUDIENCE")
    session_cookie_name: str = Field(default="vecinu-session", alias="SESSION_COOKIE_NAME")
    session_cookie_max_age_seconds: int = Field(
        default=60 * 60 * 24 * 7,
        alias="SESSION_COOKIE_MAX_AGE_SECONDS",
    )

    # Object storage for post images
    storage_url: str | None = Field(default=None, alias="STORAGE_URL")
    storage_service_key: str | None = Field(default=None, alias="STORAGE_SERVICE_KEY")
    storage_bucket: str = Field(default="post-images", alias="STORAGE_BUCKET")
    storage_timeout_seconds: float = Field(default=30.0, alias="STORAGE_TIMEOUT_SECONDS")
    image_max_bytes: int = Field(default=5 * 1024 * 1024, alias="IMAGE_MAX_BYTES")
    image_max_per_post: int = Field(default=4, alias="IMAGE_MAX_PER_POST")
    image_allowed_types: list[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
        alias="IMAGE_ALLOWED_TYPES",
    )

    # Content rules
    marketplace_expiry_days: int = Field(default=30, alias="MARKETPLACE_EXPIRY_DAYS")
    pilot_city: str = Field(default="Timișoara", alias="PILOT_CITY")

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
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def rate_limits(self) -> dict[str, tuple[int, int]]:
        """Return the configured limits keyed by limiter name.

        Returns:
            Mapping of limiter name to ``(requests, window_seconds)``.
        """
        return {
            "auth": (self.rate_limit_auth_requests, self.rate_limit_auth_window_seconds),
            "posts": (self.rate_limit_posts_requests, self.rate_limit_posts_window_seconds),
            "comments": (
                self.rate_limit_comments_requests,
                self.rate_limit_comments_window_seconds,
            ),
            "api": (self.rate_limit_api_requests, self.rate_limit_api_window_seconds),
        }


settings = Settings()  # type: ignore[call-arg]
