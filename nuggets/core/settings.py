from functools import lru_cache
from pathlib import Path

from pydantic import PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from existing .env
    )

    # Database - allow both PostgreSQL and SQLite for development
    database_url: PostgresDsn | str = "sqlite:///./nuggets.db"
    database_pool_size: int = 20
    database_max_overflow: int = 40

    # Application
    app_name: str = "Nuggets"
    debug: bool = False
    log_level: str = "INFO"
    logs_dir: Path = Path("logs")

    # Article normalization
    read_time_words_per_minute: int = 200
    excerpt_max_length: int = 150

    # Tag resolution
    tag_batch_workers: int = 4

    # Media enrichment
    enrichment_timeout_seconds: float = 10.0
    youtube_oembed_endpoint: str = "https://www.youtube.com/oembed"

    # HTTP client
    http_timeout_seconds: int = 30
    http_max_retries: int = 3

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL must be set")
        # Allow SQLite for development
        if isinstance(v, str) and v.startswith("sqlite:"):
            return v
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
