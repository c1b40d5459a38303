"""
Search Analytics.

Write side: search and result-click events appended to the behavior log.
Read side: a report over ``[start, end)`` built from the same log.

Every aggregate of the report degrades on its own: a failed lookup zeroes or
empties that field and leaves the rest intact.
"""

import threading
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from config.settings import get_settings
from core.logging import get_logger
from core.utils import parse_timestamp, to_float, utc_now, window_start
from recs.behavior import BehaviorLog, get_behavior_log
from recs.models import BehaviorEvent
from search.models import (
    CategoryCount,
    DailyCount,
    EntityType,
    EventType,
    QueryCount,
    SearchAnalyticsReport,
    SearchQuery,
)

logger = get_logger(__name__)

# Search events are logged against a placeholder entity
SEARCH_ENTITY_ID = "search"


class SearchAnalytics:
    """Track search events and report on them."""

    def __init__(self, behavior_log: Optional[BehaviorLog] = None, default_days: int = 30):
        self._log = behavior_log
        self.default_days = default_days

    @property
    def log(self) -> BehaviorLog:
        if self._log is None:
            self._log = get_behavior_log()
        return self._log

    # =========================================================================
    # Write side
    # =========================================================================

    def track_search(
        self,
        query: SearchQuery,
        result_count: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> bool:
        """Log a search; skipped without a user or query text."""
        if not query.user_id or not query.query:
            return False
        metadata: Dict[str, Any] = {
            "query": query.query,
            "category": query.category,
            "craftType": query.craft_type,
        }
        if result_count is not None:
            metadata["result_count"] = result_count
        return self.log.track_event(BehaviorEvent(
            user_id=query.user_id,
            event_type=EventType.SEARCH,
            entity_type=EntityType.MEDIA,
            entity_id=SEARCH_ENTITY_ID,
            metadata=metadata,
            session_id=session_id,
        ))

    def track_click(
        self,
        user_id: str,
        result_id: str,
        result_type: EntityType,
        search_query: Optional[str] = None,
        position: Optional[int] = None,
    ) -> bool:
        """Log a click on a search result."""
        return self.log.track_event(BehaviorEvent(
            user_id=user_id,
            event_type=EventType.CLICK,
            entity_type=result_type,
            entity_id=result_id,
            metadata={
                "source": "search",
                "search_query": search_query,
                "position": position,
            },
        ))

    # =========================================================================
    # Read side
    # =========================================================================

    def report(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> SearchAnalyticsReport:
        """Search report over ``[start, end)``; defaults to the trailing window."""
        end = end or utc_now()
        start = start or window_start(self.default_days, end)

        total = self._count("search", start, end)
        clicks = self._count("click", start, end, {"source": "search"})

        try:
            events = self.log.search_events(since=start, until=end)
        except Exception as e:
            logger.warning("Search event scan failed", error=str(e))
            events = []

        return SearchAnalyticsReport(
            total_searches=total,
            popular_queries=[
                QueryCount(query=q, count=c)
                for q, c in _top(events, "query", 10)
            ],
            popular_categories=[
                CategoryCount(category=cat, count=c)
                for cat, c in _top(events, "category", 10)
            ],
            search_trends=_daily_counts(events),
            avg_results_per_search=_avg_results(events),
            click_through_rate=clicks / total if total > 0 else 0.0,
        )

    def _count(
        self,
        event_type: str,
        start: datetime,
        end: datetime,
        metadata_equals: Optional[Dict[str, str]] = None,
    ) -> int:
        try:
            return self.log.count_events(event_type, start, end, metadata_equals)
        except Exception as e:
            logger.warning("Event count failed", event_type=event_type, error=str(e))
            return 0


def _top(events: List[Dict[str, Any]], key: str, limit: int) -> List[tuple]:
    counts = Counter()
    for event in events:
        value = (event.get("metadata") or {}).get(key)
        if isinstance(value, str) and value:
            counts[value] += 1
    return counts.most_common(limit)


def _daily_counts(events: List[Dict[str, Any]]) -> List[DailyCount]:
    """Events per UTC day, oldest first."""
    counts = Counter()
    for event in events:
        ts = parse_timestamp(event.get("created_at"))
        if ts is not None:
            counts[ts.date().isoformat()] += 1
    return [DailyCount(date=day, count=counts[day]) for day in sorted(counts)]


def _avg_results(events: List[Dict[str, Any]]) -> float:
    """Mean ``result_count`` over searches that recorded one."""
    counts = [
        n for n in (to_float((e.get("metadata") or {}).get("result_count")) for e in events)
        if n is not None
    ]
    if not counts:
        return 0.0
    return sum(counts) / len(counts)


# =============================================================================
# Singleton
# =============================================================================

_analytics: Optional[SearchAnalytics] = None
_analytics_lock = threading.Lock()


def get_search_analytics() -> SearchAnalytics:
    """Get or create the SearchAnalytics singleton (thread-safe)."""
    global _analytics
    if _analytics is None:
        with _analytics_lock:
            if _analytics is None:
                _analytics = SearchAnalytics(default_days=get_settings().analytics_default_days)
    return _analytics
