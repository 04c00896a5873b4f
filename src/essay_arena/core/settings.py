"""Application settings and configuration.

This module defines all configuration options for the Essay Arena service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Game-balance values (token defaults, rewards, windows) live here so they
    can be tuned per deployment without code changes. Settings can be
    overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Essay Arena", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./essay_arena.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Token economy defaults for lazily created player rows
    default_review_tokens: int = Field(default=3, ge=0, alias="DEFAULT_REVIEW_TOKENS")
    default_attack_tokens: int = Field(default=0, ge=0, alias="DEFAULT_ATTACK_TOKENS")
    default_shield_tokens: int = Field(default=1, ge=0, alias="DEFAULT_SHIELD_TOKENS")
    review_token_cap: int = Field(default=3, ge=0, alias="REVIEW_TOKEN_CAP")
    review_token_cost: int = Field(default=1, ge=0, alias="REVIEW_TOKEN_COST")

    # Review cooldown used when a project row carries no explicit value
    default_review_cooldown_seconds: int = Field(
        default=120, ge=0, alias="DEFAULT_REVIEW_COOLDOWN_SECONDS"
    )

    # Attack protocol
    attack_offer_window_seconds: int = Field(
        default=15, gt=0, alias="ATTACK_OFFER_WINDOW_SECONDS"
    )
    attack_expiry_grace_seconds: int = Field(
        default=300, ge=0, alias="ATTACK_EXPIRY_GRACE_SECONDS"
    )
    attack_reward_review_tokens: int = Field(
        default=1, ge=0, alias="ATTACK_REWARD_REVIEW_TOKENS"
    )
    attack_steal_review_tokens: int = Field(
        default=1, ge=0, alias="ATTACK_STEAL_REVIEW_TOKENS"
    )
    attack_resolve_interval_seconds: float = Field(
        default=1.0, gt=0, alias="ATTACK_RESOLVE_INTERVAL_SECONDS"
    )

    # Live transport and presence
    ws_heartbeat_interval_seconds: float = Field(
        default=30.0, gt=0, alias="WS_HEARTBEAT_INTERVAL_SECONDS"
    )
    presence_window_seconds: int = Field(default=120, gt=0, alias="PRESENCE_WINDOW_SECONDS")
    session_staleness_seconds: int = Field(
        default=600, gt=0, alias="SESSION_STALENESS_SECONDS"
    )
    session_janitor_interval_seconds: float = Field(
        default=60.0, gt=0, alias="SESSION_JANITOR_INTERVAL_SECONDS"
    )
    background_workers_enabled: bool = Field(
        default=True, alias="BACKGROUND_WORKERS_ENABLED"
    )

    # Seeding/reset endpoints for end-to-end runs
    enable_test_routes: bool = Field(default=False, alias="ENABLE_TEST_ROUTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
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
        populate_by_name=True,
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


settings = Settings()
