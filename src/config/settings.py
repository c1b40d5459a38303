"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values are defined here.
Use get_settings() to access the singleton settings instance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required environment variables:
        - SUPABASE_URL: Supabase project URL
        - SUPABASE_SERVICE_KEY: Supabase service role key

    Optional environment variables:
        - HOST / PORT: Server bind address (default: 0.0.0.0:8080)
        - ENVIRONMENT: Environment name (development, staging, production)
        - GOOGLE_TRANSLATE_API_KEY / DEEPL_API_KEY: Translation providers
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    # ==========================================================================
    # Supabase Configuration
    # ==========================================================================
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_service_key: str = Field(..., description="Supabase service role key")

    # ==========================================================================
    # Search
    # ==========================================================================
    default_language: str = Field(default="zh-HK", description="Primary content locale")
    search_fetch_cap: int = Field(
        default=50,
        description="Max rows fetched per entity type before merge/pagination"
    )
    store_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout applied to each store lookup in a fan-out (seconds)"
    )
    search_tracking_enabled: bool = Field(
        default=True,
        description="Append a 'search' behavior event for tracked searches"
    )

    # ==========================================================================
    # Ranking / Trending / Recommendations
    # ==========================================================================
    popularity_window_days: int = Field(default=30, description="Popularity signal window")
    profile_window_days: int = Field(default=30, description="Preference profile window")
    profile_event_limit: int = Field(default=1000, description="Max events read per profile")
    trending_window_days: int = Field(default=7, description="Trending aggregation window")
    trending_top_n: int = Field(default=3, description="Trending entities per type")
    max_recommendations: int = Field(default=20, description="Default recommendations per request")
    diversity_factor: float = Field(
        default=0.3, ge=0.0, le=1.0,
        description="Diversity penalty strength (0 disables the filter)"
    )

    # ==========================================================================
    # Autocomplete / Analytics
    # ==========================================================================
    query_history_days: int = Field(default=90, description="Search history window for suggestions")
    popular_query_days: int = Field(default=7, description="Popular query window")
    analytics_default_days: int = Field(default=30, description="Default analytics window")
    event_page_size: int = Field(
        default=1000,
        description="Rows per page when an aggregate scans behavior events"
    )

    # ==========================================================================
    # Translation
    # ==========================================================================
    google_translate_api_key: str = Field(default="", description="Google Translate API key")
    deepl_api_key: str = Field(default="", description="DeepL API key")
    deepl_is_pro: bool = Field(default=False, description="Use the DeepL Pro endpoint")
    translation_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for translation provider requests (seconds)"
    )
    translation_cache_capacity: int = Field(default=10000, description="Translation cache capacity")
    translation_cache_expiry_days: int = Field(default=30, description="Translation cache entry lifetime")
    translation_max_concurrency: int = Field(
        default=5,
        description="Max in-flight provider calls during batch translation"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    Settings are loaded from environment variables and .env file.

    Returns:
        Settings: The application settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        os.environ.setdefault("ENV_FILE", str(env_file))

    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.
    """
    test_defaults = {
        "supabase_url": "https://test.supabase.co",
        "supabase_service_key": "test-key",
        "environment": "testing",
        "debug": True,
    }
    test_defaults.update(overrides)

    return Settings(**test_defaults)
