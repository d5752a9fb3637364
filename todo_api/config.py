"""
Configuration and settings for the todo API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api/v1")

    # Database (any SQLAlchemy URL; unset means in-memory)
    database_url: Optional[str] = Field(default=None)
    db_name: Optional[str] = Field(default=None)

    # Session tokens
    access_token_secret: Optional[str] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_hours: int = Field(default=24, ge=1)
    cookie_name: str = Field(default="to-do-list")

    # HTTP
    port: int = Field(default=5000)
    allowed_origins: str = Field(default="http://localhost:5173")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
