"""Application settings and configuration."""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    app_name: str = "kyndall-blog-engine"
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    service_host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    api_secret: str = Field(default="kyndall-blog-engine-secret")
    tz: str = Field(default="America/Los_Angeles")
    shutdown_grace_seconds: float = Field(default=30.0, ge=0.0)

    # Sanity CMS
    sanity_project_id: Optional[str] = Field(default=None)
    sanity_dataset: str = Field(default="production")
    sanity_token: Optional[str] = Field(default=None)
    sanity_api_version: str = Field(default="2024-01-01")

    # Anthropic
    anthropic_api_key: Optional[str] = Field(default=None)
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")
    anthropic_max_tokens: int = Field(default=4000)

    # Unsplash
    unsplash_access_key: Optional[str] = Field(default=None)
    unsplash_utm_source: str = Field(default="kyndall_ames_blog")

    # Trend sources
    tiktok_client_key: Optional[str] = Field(default=None)
    tiktok_client_secret: Optional[str] = Field(default=None)
    youtube_api_key: Optional[str] = Field(default=None)
    instagram_access_token: Optional[str] = Field(default=None)
    trends_config_path: str = Field(default="config/trends.yaml")

    # Generation policy
    articles_per_run: int = Field(default=5, ge=1)
    min_relevance_score: float = Field(default=0.1, ge=0.0, le=1.0)
    recent_days: int = Field(default=30, ge=1)
    topic_delay_seconds: float = Field(default=2.0, ge=0.0)

    # Migration policy
    migration_max_records: int = Field(default=5, ge=1)
    geo_delay_seconds: float = Field(default=1.0, ge=0.0)
    references_delay_seconds: float = Field(default=2.0, ge=0.0)
    geo_summary_chars: int = Field(default=2500, ge=100)
    references_summary_chars: int = Field(default=1000, ge=100)
    blog_post_summary_chars: int = Field(default=2000, ge=100)
    run_startup_migrations: bool = Field(default=True)

    @property
    def sanity_configured(self) -> bool:
        return bool(self.sanity_project_id and self.sanity_token)


@lru_cache()
def get_settings() -> Settings:
    """Get settings singleton."""
    return Settings()
