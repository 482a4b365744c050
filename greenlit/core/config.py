"""
Greenlit Configuration

Pydantic settings loaded from the environment and ``.env``.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Text generation
    llm_provider: Literal["gemini", "azure"] = Field(default="gemini")
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-2.5-pro")
    azure_openai_api_key: str = Field(default="")
    azure_openai_endpoint: str = Field(default="")
    azure_openai_deployment: str = Field(default="gpt-4.1")
    azure_openai_api_version: str = Field(default="2024-12-01-preview")
    request_timeout: float = Field(default=180.0)

    # Image search
    unsplash_access_key: str = Field(default="")
    image_cache_size: int = Field(default=256)

    # Storage
    storage_backend: Literal["memory", "supabase"] = Field(default="memory")
    supabase_url: str = Field(default="")
    supabase_key: str = Field(default="")

    # Progress
    progress_max_runs: int = Field(default=64)
    status_endpoint_url: str = Field(default="")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    generation_rate_limit: str = Field(default="20/minute")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
