"""
Tests for the configuration module.
"""

import pytest


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_env(self):
        """Settings load from environment variables with defaults applied."""
        from config.settings import get_settings

        settings = get_settings()

        assert settings.supabase_url
        assert settings.supabase_service_key
        assert settings.host == "0.0.0.0"
        assert settings.port == 8080

    def test_is_development_property(self):
        from config.settings import Settings

        for env in ["development", "dev", "local"]:
            settings = Settings(
                supabase_url="https://test.supabase.co",
                supabase_service_key="test-key",
                environment=env,
            )
            assert settings.is_development is True

        settings = Settings(
            supabase_url="https://test.supabase.co",
            supabase_service_key="test-key",
            environment="production",
        )
        assert settings.is_development is False
        assert settings.is_production is True

    def test_cors_origins_parsing(self):
        """CORS origins can be given as a comma-separated string."""
        from config.settings import Settings

        settings = Settings(
            supabase_url="https://test.supabase.co",
            supabase_service_key="test-key",
            cors_origins="http://localhost:3000, http://localhost:5173",
        )

        assert settings.cors_origins == ["http://localhost:3000", "http://localhost:5173"]

    def test_engine_defaults(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing()

        assert settings.default_language == "zh-HK"
        assert settings.search_fetch_cap == 50
        assert settings.trending_window_days == 7
        assert settings.trending_top_n == 3
        assert settings.max_recommendations == 20
        assert settings.diversity_factor == 0.3
        assert settings.translation_cache_capacity == 10000
        assert settings.translation_cache_expiry_days == 30
        assert settings.translation_max_concurrency == 5

    def test_diversity_factor_bounds(self):
        from pydantic import ValidationError
        from config.settings import get_settings_for_testing

        with pytest.raises(ValidationError):
            get_settings_for_testing(diversity_factor=1.5)

    def test_settings_for_testing(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing(deepl_api_key="k")

        assert settings.environment == "testing"
        assert settings.debug is True
        assert settings.deepl_api_key == "k"
        assert "test" in settings.supabase_url


class TestConstants:
    """Tests for constants module."""

    def test_ranking_weights_sum_to_one(self):
        from config.constants import DEFAULT_RANKING_WEIGHTS as w

        assert w.RELEVANCE + w.POPULARITY + w.QUALITY + w.RECENCY == pytest.approx(1.0)
        assert w.POPULARITY_SATURATION == 100
        assert w.RECENCY_HORIZON_DAYS == 365

    def test_personalization_boosts(self):
        from config.constants import DEFAULT_PERSONALIZATION_BOOSTS as b

        assert b.CRAFT_TYPE_STEP == 0.1
        assert b.PRICE_RANGE == 0.2
        assert b.LANGUAGE == 0.1

    def test_recommendation_scores(self):
        from config.constants import DEFAULT_RECOMMENDATION_SCORES as s

        assert s.TRENDING == {"craftsman": 0.9, "course": 0.8}
        assert s.DIVERSITY_THRESHOLD == 0.3
        assert s.DIVERSITY_TYPE_STEP == 0.1
        assert s.DIVERSITY_CRAFT_TYPE_STEP == 0.05

    def test_entity_order_and_tables(self):
        from config.constants import ENTITY_TABLES, ENTITY_TYPE_ORDER

        assert ENTITY_TYPE_ORDER == ("craftsman", "course", "product", "media")
        assert set(ENTITY_TABLES) == set(ENTITY_TYPE_ORDER)

    def test_content_categories_cover_craft_types(self):
        from config.constants import CONTENT_CATEGORIES, CRAFT_TYPES

        root = CONTENT_CATEGORIES[0]
        assert root["level"] == 0
        assert root["craft_types"] == list(CRAFT_TYPES)
        leaves = [c for c in CONTENT_CATEGORIES if c["level"] == 1]
        assert sorted(c["craft_types"][0] for c in leaves) == sorted(CRAFT_TYPES)
        assert all(c["parent_id"] == root["id"] for c in leaves)


class TestDatabase:
    """Tests for database module."""

    def test_supabase_client_optional_returns_none_on_error(self):
        from unittest.mock import patch
        from config import database

        database.get_supabase_client.cache_clear()
        try:
            with patch.object(database, "create_client", side_effect=RuntimeError("no network")):
                assert database.get_supabase_client_optional() is None
        finally:
            database.get_supabase_client.cache_clear()

    def test_supabase_client_error_is_store_error(self):
        from config.database import SupabaseClientError
        from core.errors import StoreUnavailableError

        assert issubclass(SupabaseClientError, StoreUnavailableError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
