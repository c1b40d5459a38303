"""
Configuration module for the discovery engine.

This module provides centralized configuration management using pydantic-settings.
All environment variables and configuration values should be accessed through this module.

Usage:
    from config import get_settings, settings

    settings = get_settings()
    default_language = settings.default_language
"""

from config.settings import Settings, get_settings

# Note: This will raise if required env vars are missing
try:
    settings = get_settings()
except Exception:
    settings = None  # Allow import even if env vars not set (for testing)

__all__ = ["Settings", "get_settings", "settings"]
