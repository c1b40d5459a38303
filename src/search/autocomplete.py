"""
Autocomplete Service.

Suggestions are gathered from four sources, in this order:
1. past search queries containing the partial text (last 90 days, by count)
2. entity-type categories (localized label or type key), up to 3
3. craft types from the fixed vocabulary, up to 3
4. distinct workshop locations, up to 2

The combined list is cut to ``limit``. Each source fails on its own; popular
queries fall back to a default vocabulary.
"""

import re
import threading
from collections import Counter
from typing import List, Optional

from config.constants import (
    CATEGORY_LABELS,
    CRAFT_TYPES,
    DEFAULT_POPULAR_QUERIES,
    ENTITY_TYPE_ORDER,
)
from config.settings import get_settings
from core.logging import get_logger
from core.utils import window_start
from recs.behavior import BehaviorLog, get_behavior_log
from search.models import AutocompleteResponse, SearchSuggestion, SuggestionType
from search.store import ContentStore, get_content_store

logger = get_logger(__name__)


def highlight_match(text: str, query: str) -> str:
    """Wrap case-insensitive occurrences of ``query`` in ``<mark>`` tags."""
    if not query.strip():
        return text
    return re.sub(
        re.escape(query),
        lambda m: f"<mark>{m.group(0)}</mark>",
        text,
        flags=re.IGNORECASE,
    )


def _query_of(event) -> Optional[str]:
    query = (event.get("metadata") or {}).get("query")
    if isinstance(query, str) and query.strip():
        return query
    return None


class AutocompleteService:
    """Query, category, craft-type and location suggestions."""

    def __init__(
        self,
        behavior_log: Optional[BehaviorLog] = None,
        store: Optional[ContentStore] = None,
        history_days: int = 90,
        popular_days: int = 7,
    ):
        self._log = behavior_log
        self._store = store
        self.history_days = history_days
        self.popular_days = popular_days

    @property
    def log(self) -> BehaviorLog:
        if self._log is None:
            self._log = get_behavior_log()
        return self._log

    @property
    def store(self) -> ContentStore:
        if self._store is None:
            self._store = get_content_store()
        return self._store

    def autocomplete(
        self,
        query: str,
        user_id: Optional[str] = None,
        limit: int = 10,
    ) -> AutocompleteResponse:
        """
        Get autocomplete suggestions.

        Args:
            query: Partial search text.
            user_id: Adds the user's recent searches when given.
            limit: Max suggestions across all sources.

        Returns:
            AutocompleteResponse. An empty ``query`` yields no suggestions and
            no recent searches, only popular queries.
        """
        popular = self.popular_queries(5)
        if not query.strip():
            return AutocompleteResponse(suggestions=[], popular_queries=popular, recent_searches=[])

        suggestions: List[SearchSuggestion] = []
        suggestions.extend(self.query_suggestions(query, limit))
        suggestions.extend(self.category_suggestions(query, 3))
        suggestions.extend(self.craft_type_suggestions(query, 3))
        suggestions.extend(self.location_suggestions(query, 2))

        return AutocompleteResponse(
            suggestions=suggestions[:limit],
            popular_queries=popular,
            recent_searches=self.recent_searches(user_id, 5) if user_id else [],
        )

    # =========================================================================
    # Sources
    # =========================================================================

    def query_suggestions(self, query: str, limit: int) -> List[SearchSuggestion]:
        try:
            events = self.log.search_events(
                since=window_start(self.history_days), query_contains=query
            )
        except Exception as e:
            logger.warning("Query suggestions failed", error=str(e))
            return []
        counts = Counter(q for q in map(_query_of, events) if q)
        return [
            SearchSuggestion(
                text=text,
                type=SuggestionType.QUERY,
                count=count,
                highlighted=highlight_match(text, query),
            )
            for text, count in counts.most_common(limit)
        ]

    def category_suggestions(self, query: str, limit: int) -> List[SearchSuggestion]:
        needle = query.lower()
        matches = [
            CATEGORY_LABELS[key] for key in ENTITY_TYPE_ORDER
            if needle in CATEGORY_LABELS[key].lower() or needle in key
        ]
        return [
            SearchSuggestion(
                text=label, type=SuggestionType.CATEGORY, highlighted=highlight_match(label, query)
            )
            for label in matches[:limit]
        ]

    def craft_type_suggestions(self, query: str, limit: int) -> List[SearchSuggestion]:
        needle = query.lower()
        matches = [t for t in CRAFT_TYPES if needle in t.lower()]
        return [
            SearchSuggestion(
                text=t, type=SuggestionType.CRAFT_TYPE, highlighted=highlight_match(t, query)
            )
            for t in matches[:limit]
        ]

    def location_suggestions(self, query: str, limit: int) -> List[SearchSuggestion]:
        try:
            locations = self.store.distinct_locations(query, limit)
        except Exception as e:
            logger.warning("Location suggestions failed", error=str(e))
            return []
        return [
            SearchSuggestion(
                text=loc, type=SuggestionType.LOCATION, highlighted=highlight_match(loc, query)
            )
            for loc in locations
        ]

    def popular_queries(self, limit: int) -> List[str]:
        """Most searched queries in the popular window; defaults when none."""
        try:
            events = self.log.search_events(since=window_start(self.popular_days))
        except Exception as e:
            logger.warning("Popular queries failed", error=str(e))
            return list(DEFAULT_POPULAR_QUERIES[:limit])
        counts = Counter(q for q in map(_query_of, events) if q)
        if not counts:
            return list(DEFAULT_POPULAR_QUERIES[:limit])
        return [text for text, _ in counts.most_common(limit)]

    def recent_searches(self, user_id: str, limit: int) -> List[str]:
        """The user's distinct queries, most recent first."""
        try:
            events = self.log.search_events(
                since=window_start(self.history_days),
                user_id=user_id,
                newest_first=True,
                limit=limit * 20,
            )
        except Exception as e:
            logger.warning("Recent searches failed", user_id=user_id, error=str(e))
            return []
        recent: List[str] = []
        for q in map(_query_of, events):
            if q and q not in recent:
                recent.append(q)
            if len(recent) == limit:
                break
        return recent


# =============================================================================
# Singleton
# =============================================================================

_autocomplete: Optional[AutocompleteService] = None
_autocomplete_lock = threading.Lock()


def get_autocomplete_service() -> AutocompleteService:
    """Get or create the AutocompleteService singleton (thread-safe)."""
    global _autocomplete
    if _autocomplete is None:
        with _autocomplete_lock:
            if _autocomplete is None:
                settings = get_settings()
                _autocomplete = AutocompleteService(
                    history_days=settings.query_history_days,
                    popular_days=settings.popular_query_days,
                )
    return _autocomplete
