"""
Trending content over the behavior event log.

Top-N craftsmen and courses by view/click/bookmark events in the trailing
window, joined back to their current rows. Entities that no longer exist are
skipped. Scores are the fixed per-type trending base scores.
"""

import threading
from datetime import datetime
from typing import Callable, List, Optional

from config.constants import (
    DEFAULT_RECOMMENDATION_SCORES,
    ITEM_REASONS,
    SECTION_COPY,
    TRENDING_EVENT_TYPES,
    RecommendationScores,
)
from config.settings import get_settings
from core.logging import get_logger
from core.utils import utc_now, window_start
from recs.behavior import BehaviorLog, get_behavior_log
from recs.models import RecommendationResult, RecommendationSection, SectionType
from recs.recommender import recommendation_from_row
from search.store import ContentStore, get_content_store

logger = get_logger(__name__)

TRENDING_ENTITY_TYPES = ("craftsman", "course")


class TrendingAggregator:
    """Time-windowed popularity over the event log."""

    def __init__(
        self,
        behavior_log: Optional[BehaviorLog] = None,
        store: Optional[ContentStore] = None,
        window_days: int = 7,
        top_n: int = 3,
        scores: RecommendationScores = DEFAULT_RECOMMENDATION_SCORES,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.behavior_log = behavior_log or get_behavior_log()
        self.store = store or get_content_store()
        self.window_days = window_days
        self.top_n = top_n
        self.scores = scores
        self.clock = clock

    def trending_for(self, entity_type: str) -> List[RecommendationResult]:
        since = window_start(self.window_days, self.clock())
        top = self.behavior_log.top_entities(entity_type, TRENDING_EVENT_TYPES, since, self.top_n)
        if not top:
            return []
        rows = self.store.get_entities(entity_type, [entity_id for entity_id, _ in top])
        items = []
        for entity_id, count in top:
            row = rows.get(entity_id)
            if row is None:
                continue
            items.append(recommendation_from_row(
                entity_type, row,
                self.scores.TRENDING[entity_type],
                ITEM_REASONS["trending"],
                interaction_count=count,
            ))
        return items

    def trending(self) -> List[RecommendationResult]:
        """Trending craftsmen then courses; a failed type contributes nothing."""
        items: List[RecommendationResult] = []
        for entity_type in TRENDING_ENTITY_TYPES:
            try:
                items.extend(self.trending_for(entity_type))
            except Exception as e:
                logger.warning("Trending lookup failed", entity_type=entity_type, error=str(e))
        return items

    def section(self) -> RecommendationSection:
        copy = SECTION_COPY["trending"]
        return RecommendationSection(
            title=copy["title"],
            subtitle=copy["subtitle"],
            type=SectionType.TRENDING,
            items=self.trending(),
            reason=copy["reason"],
        )


_aggregator: Optional[TrendingAggregator] = None
_lock = threading.Lock()


def get_trending_aggregator() -> TrendingAggregator:
    """Get or create the TrendingAggregator singleton (thread-safe)."""
    global _aggregator
    if _aggregator is None:
        with _lock:
            if _aggregator is None:
                settings = get_settings()
                _aggregator = TrendingAggregator(
                    window_days=settings.trending_window_days,
                    top_n=settings.trending_top_n,
                )
    return _aggregator
