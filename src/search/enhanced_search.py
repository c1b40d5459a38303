"""
Enhanced search pipeline.

    track search (user + query text)
        -> content search candidates (merged, sorted, unpaginated)
        -> personalization boost (user, sort_by=relevance)
        -> multi-signal ranking (sort_by=relevance)
        -> paginate
        -> behavior recommendations (optional)

Explicit ``date`` / ``popularity`` orderings are returned as sorted; boosts and
ranking only re-order relevance searches. Any unexpected failure yields an
empty, well-formed response.
"""

import threading
from typing import List, Optional

from config.settings import get_settings
from core.logging import get_logger
from core.utils import parse_timestamp, utc_now
from recs.models import RecommendationResult
from recs.recommender import BehaviorRecommender, get_behavior_recommender
from search.analytics import SearchAnalytics, get_search_analytics
from search.content_search import ContentSearchService, get_content_search_service, paginate
from search.models import (
    EnhancedSearchRequest,
    SearchFacets,
    SearchResponse,
    SearchResult,
    SortBy,
)
from search.personalization import PersonalizationBooster, get_personalization_booster
from search.ranking import RankingEngine, get_ranking_engine

logger = get_logger(__name__)


def recommendation_to_result(rec: RecommendationResult) -> SearchResult:
    return SearchResult(
        id=rec.id,
        type=rec.type,
        title=rec.title,
        description=rec.description,
        category=rec.type.value,
        craft_type=rec.craft_type,
        image_url=rec.image_url,
        url=rec.url,
        relevance_score=rec.score,
        created_at=parse_timestamp(rec.metadata.get("created_at")) or utc_now(),
        metadata={**rec.metadata, "recommendation_reason": rec.reason},
    )


class EnhancedSearchService:
    """Search with tracking, personalization, ranking and recommendations."""

    def __init__(
        self,
        content_search: Optional[ContentSearchService] = None,
        ranking: Optional[RankingEngine] = None,
        personalization: Optional[PersonalizationBooster] = None,
        recommender: Optional[BehaviorRecommender] = None,
        analytics: Optional[SearchAnalytics] = None,
        tracking_enabled: bool = True,
    ):
        self.content_search = content_search or get_content_search_service()
        self.ranking = ranking or get_ranking_engine()
        self.personalization = personalization or get_personalization_booster()
        self.recommender = recommender or get_behavior_recommender()
        self.analytics = analytics or get_search_analytics()
        self.tracking_enabled = tracking_enabled

    def search(self, request: EnhancedSearchRequest) -> SearchResponse:
        query = request.to_query()
        try:
            return self._search(request)
        except Exception as e:
            logger.error("Enhanced search failed", query=query.query, error=str(e), exc_info=True)
            return SearchResponse(results=[], total=0, facets=SearchFacets(), query=query)

    def _search(self, request: EnhancedSearchRequest) -> SearchResponse:
        query = request.to_query()
        candidates = self.content_search.collect(query)
        results = candidates.results

        personalized = False
        if query.sort_by == SortBy.RELEVANCE:
            if request.personalize and query.user_id:
                boosted = self.personalization.personalize_results(results, query.user_id)
                if boosted is not None:
                    results = boosted
                    personalized = True
            results = self.ranking.rank(results)

        if request.track_search and self.tracking_enabled:
            self.analytics.track_search(query, result_count=len(results))

        recommendations: List[SearchResult] = []
        if request.include_recommendations and query.user_id:
            recs = self.recommender.recommend(user_id=query.user_id, limit=5, exclude_viewed=True)
            recommendations = [recommendation_to_result(rec) for rec in recs]

        logger.info(
            "Search completed",
            query=query.query,
            total=len(results),
            personalized=personalized,
            recommendations=len(recommendations),
        )
        return SearchResponse(
            results=paginate(results, query.offset, query.limit),
            total=len(results),
            facets=candidates.facets,
            query=query,
            recommendations=recommendations,
            personalized=personalized,
        )


_service: Optional[EnhancedSearchService] = None
_lock = threading.Lock()


def get_enhanced_search_service() -> EnhancedSearchService:
    """Get or create the EnhancedSearchService singleton (thread-safe)."""
    global _service
    if _service is None:
        with _lock:
            if _service is None:
                _service = EnhancedSearchService(
                    tracking_enabled=get_settings().search_tracking_enabled,
                )
    return _service
