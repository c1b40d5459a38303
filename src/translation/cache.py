"""
In-memory translation cache.

Entries are keyed by (source text, source language, target language) and
expire 30 days after creation. On insert at or over capacity, the 10% of
entries with the lowest use count, then the oldest last use, are evicted
first: an LFU/LRU hybrid rather than a strict LRU.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from core.logging import LoggerMixin
from core.utils import utc_now
from translation.models import TranslationQuality

CacheKey = Tuple[str, str, str]


@dataclass
class TranslationCacheEntry:
    """One cached translation with usage statistics."""

    source_text: str
    source_language: str
    target_language: str
    translated_text: str
    provider: str
    quality: Optional[TranslationQuality] = None
    created_at: datetime = field(default_factory=utc_now)
    last_used: datetime = field(default_factory=utc_now)
    use_count: int = 1

    def is_expired(self, now: datetime, expiry: timedelta) -> bool:
        return now - self.created_at > expiry

    def touch(self, now: datetime) -> None:
        self.last_used = now
        self.use_count += 1


class TranslationCache(LoggerMixin):
    """
    Thread-safe bounded translation cache.

    Usage:
        cache = TranslationCache(capacity=10000, expiry_days=30)
        cache.put("竹編", "zh-HK", "en", "Bamboo weaving", provider="deepl")
        entry = cache.get("竹編", "zh-HK", "en")
    """

    def __init__(
        self,
        capacity: int = 10000,
        expiry_days: int = 30,
        evict_fraction: float = 0.1,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.capacity = capacity
        self.expiry = timedelta(days=expiry_days)
        self.evict_fraction = evict_fraction
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[CacheKey, TranslationCacheEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(
        self,
        source_text: str,
        source_language: str,
        target_language: str,
    ) -> Optional[TranslationCacheEntry]:
        """Live entry for the key (usage statistics updated), or None."""
        key = (source_text, source_language, target_language)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock()
            if entry.is_expired(now, self.expiry):
                return None
            entry.touch(now)
            return entry

    def put(
        self,
        source_text: str,
        source_language: str,
        target_language: str,
        translated_text: str,
        provider: str,
        quality: Optional[TranslationQuality] = None,
    ) -> TranslationCacheEntry:
        key = (source_text, source_language, target_language)
        now = self._clock()
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.capacity:
                self._evict()
            entry = TranslationCacheEntry(
                source_text=source_text,
                source_language=source_language,
                target_language=target_language,
                translated_text=translated_text,
                provider=provider,
                quality=quality,
                created_at=now,
                last_used=now,
            )
            self._entries[key] = entry
            return entry

    def _evict(self) -> int:
        """Drop the least used, then least recently used, fraction of capacity."""
        count = max(1, int(self.capacity * self.evict_fraction))
        victims = sorted(
            self._entries.items(),
            key=lambda kv: (kv[1].use_count, kv[1].last_used),
        )[:count]
        for key, _ in victims:
            del self._entries[key]
        self.logger.info("Evicted translation cache entries", evicted=len(victims))
        return len(victims)

    def clear_expired(self) -> int:
        """Remove expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now, self.expiry)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def provider_usage(self) -> Dict[str, int]:
        """Cached entry count per provider."""
        with self._lock:
            return dict(Counter(e.provider for e in self._entries.values()))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
