from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "folio"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "FOLIO_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/folio",
        validation_alias=AliasChoices("DATABASE_URL", "FOLIO_DATABASE_URL"),
    )
    cors_origins: list[str] = Field(default=["*"], validation_alias=AliasChoices("CORS_ORIGINS", "FOLIO_CORS_ORIGINS"))
    youtube_api_key: str | None = Field(default=None, validation_alias=AliasChoices("YOUTUBE_API_KEY", "FOLIO_YOUTUBE_API_KEY"))
    anthropic_api_key: str | None = Field(default=None, validation_alias=AliasChoices("ANTHROPIC_API_KEY", "FOLIO_ANTHROPIC_API_KEY"))
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", validation_alias=AliasChoices("ANTHROPIC_MODEL", "FOLIO_ANTHROPIC_MODEL"))
    anthropic_max_tokens: int = Field(default=2000, validation_alias=AliasChoices("ANTHROPIC_MAX_TOKENS", "FOLIO_ANTHROPIC_MAX_TOKENS"))
    admin_password: str | None = Field(default=None, validation_alias=AliasChoices("ADMIN_PASSWORD", "FOLIO_ADMIN_PASSWORD"))
    token_expiry_hours: int = Field(default=24, validation_alias=AliasChoices("TOKEN_EXPIRY_HOURS", "FOLIO_TOKEN_EXPIRY_HOURS"))
    redis_url: str = Field(default="redis://redis:6379/0", validation_alias=AliasChoices("REDIS_URL", "FOLIO_REDIS_URL"))
    celery_enabled: bool = Field(default=False, validation_alias=AliasChoices("CELERY_ENABLED", "FOLIO_CELERY_ENABLED"))
    scheduler_enabled: bool = Field(default=True, validation_alias=AliasChoices("SCHEDULER_ENABLED", "FOLIO_SCHEDULER_ENABLED"))
    metrics_refresh_interval_hours: int = Field(default=6, validation_alias=AliasChoices("METRICS_REFRESH_INTERVAL_HOURS", "FOLIO_METRICS_REFRESH_INTERVAL_HOURS"))
    refine_interval_hours: int = Field(default=24, validation_alias=AliasChoices("REFINE_INTERVAL_HOURS", "FOLIO_REFINE_INTERVAL_HOURS"))
    metrics_refresh_concurrency: int = Field(default=8, validation_alias=AliasChoices("METRICS_REFRESH_CONCURRENCY", "FOLIO_METRICS_REFRESH_CONCURRENCY"))
    suggestion_ttl_days: int = Field(default=7, validation_alias=AliasChoices("SUGGESTION_TTL_DAYS", "FOLIO_SUGGESTION_TTL_DAYS"))
    discovery_min_pending: int = Field(default=6, validation_alias=AliasChoices("DISCOVERY_MIN_PENDING", "FOLIO_DISCOVERY_MIN_PENDING"))
    discovery_batch_size: int = Field(default=30, validation_alias=AliasChoices("DISCOVERY_BATCH_SIZE", "FOLIO_DISCOVERY_BATCH_SIZE"))
    discovery_search_timeout_sec: float = Field(default=5.0, validation_alias=AliasChoices("DISCOVERY_SEARCH_TIMEOUT_SEC", "FOLIO_DISCOVERY_SEARCH_TIMEOUT_SEC"))
    min_ratings_for_refine: int = Field(default=3, validation_alias=AliasChoices("MIN_RATINGS_FOR_REFINE", "FOLIO_MIN_RATINGS_FOR_REFINE"))
    extension_token_ttl_sec: int = Field(default=30 * 24 * 3600, validation_alias=AliasChoices("EXTENSION_TOKEN_TTL_SEC", "FOLIO_EXTENSION_TOKEN_TTL_SEC"))

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url

    @property
    def is_postgres(self) -> bool:
        return self.async_database_url.startswith("postgresql")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
