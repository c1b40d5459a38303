"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Request tracing middleware
- Engine exception types
- Common utilities
"""

from core.logging import configure_logging, get_logger
from core.errors import (
    DiscoveryError,
    StoreUnavailableError,
    TranslationError,
    TranslationProviderUnavailable,
)
from core.utils import clamp, parse_timestamp, safe_get, utc_now

__all__ = [
    "configure_logging",
    "get_logger",
    "DiscoveryError",
    "StoreUnavailableError",
    "TranslationError",
    "TranslationProviderUnavailable",
    "clamp",
    "parse_timestamp",
    "safe_get",
    "utc_now",
]
