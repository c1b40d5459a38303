"""
Translation Module: machine translation with caching and quality checks.

Provides:
- GoogleTranslateProvider / DeepLProvider: HTTP providers
- TranslationQualityAssessment: heuristic quality report
- TranslationCache: bounded in-memory cache with LFU/LRU eviction
- TranslationService: cached single, batch and multilingual translation
"""

from translation.cache import TranslationCache, TranslationCacheEntry
from translation.models import TranslationJob, TranslationOutcome, TranslationQuality
from translation.providers import DeepLProvider, GoogleTranslateProvider, TranslationProvider
from translation.quality import TranslationQualityAssessment
from translation.service import TranslationService, get_translation_service

__all__ = [
    "TranslationCache",
    "TranslationCacheEntry",
    "TranslationJob",
    "TranslationOutcome",
    "TranslationQuality",
    "DeepLProvider",
    "GoogleTranslateProvider",
    "TranslationProvider",
    "TranslationQualityAssessment",
    "TranslationService",
    "get_translation_service",
]
