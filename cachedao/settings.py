"""DAO settings via Pydantic Settings."""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables (prefix ``DAO_``)."""

    model_config = SettingsConfigDict(
        env_prefix="DAO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Relational store (SQLAlchemy URLs)
    database_url: str = "sqlite:///./cachedao.db"
    database_ro_url: str = Field(
        default="",
        description="Read-only replica URL; falls back to database_url when empty",
    )
    database_echo: bool = False

    @property
    def read_only_database_url(self) -> str:
        """Get the URL used for read-only connections."""
        return self.database_ro_url or self.database_url

    # Cache (Redis)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("DAO_REDIS_URL", "REDIS_URL"),
    )
    cache_ttl: int = Field(
        default=0,
        ge=0,
        description="TTL in seconds for cached entities; 0 means no expiry",
    )
    redis_socket_timeout: float = 5.0

    # Document store (MongoDB)
    mongo_url: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("DAO_MONGO_URL", "MONGO_URI"),
    )
    mongo_database: str = "cachedao"

    # Search (Elasticsearch REST endpoint)
    search_url: str = Field(
        default="",
        validation_alias=AliasChoices("DAO_SEARCH_URL", "ELASTICSEARCH_URL"),
        description="Base URL of the search service; empty disables index sync",
    )
    search_timeout: float = 10.0

    @field_validator("search_url", mode="before")
    @classmethod
    def _strip_search_url(cls, v: object) -> str:
        """Accept None and drop any trailing slash."""
        if v is None:
            return ""
        return str(v).strip().rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
