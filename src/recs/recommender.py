"""
Behavior-based recommendation sources.

Three sources feed the composer and the enhanced search:
- user-based: entities in the user's top craft types, skipping what they viewed
- item-based: entities similar to the one being browsed
- popular: newest verified craftsmen and active courses (cold-start fallback)

Every source assigns fixed base scores; the diversity filter and the
composer do the rest.
"""

import math
import threading
from typing import Any, Dict, Iterable, List, Optional

from config.constants import (
    ACTIVE_STATUS,
    DEFAULT_LANGUAGE,
    DEFAULT_RECOMMENDATION_SCORES,
    ITEM_REASONS,
    VERIFIED_STATUS,
    RecommendationScores,
)
from core.logging import get_logger
from core.utils import isoformat, to_float
from recs.behavior import UserProfileService, get_profile_service
from recs.models import RecommendationResult, UserPreferenceProfile
from search.adapters import row_to_result
from search.models import SearchResult
from search.store import Condition, ContentStore, EntityFilter, get_content_store

logger = get_logger(__name__)


# =============================================================================
# Mapping helpers
# =============================================================================

def to_recommendation(
    result: SearchResult,
    score: float,
    reason: str,
    **metadata: Any,
) -> RecommendationResult:
    """Wrap a mapped entity with a score and reason."""
    return RecommendationResult(
        id=result.id,
        type=result.type,
        title=result.title,
        description=result.description,
        image_url=result.image_url,
        url=result.url,
        score=score,
        reason=reason,
        metadata={
            **result.metadata,
            "craft_type": result.craft_type,
            "created_at": isoformat(result.created_at),
            **metadata,
        },
    )


def recommendation_from_row(
    entity_type: str,
    row: Dict[str, Any],
    score: float,
    reason: str,
    language: str = DEFAULT_LANGUAGE,
    **metadata: Any,
) -> RecommendationResult:
    return to_recommendation(row_to_result(entity_type, row, language), score, reason, **metadata)


def dedupe_recommendations(
    recommendations: Iterable[RecommendationResult],
) -> List[RecommendationResult]:
    """First occurrence of each ``(type, id)`` wins; then highest score first."""
    seen = set()
    unique = []
    for rec in recommendations:
        key = (rec.type.value, rec.id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(rec)
    return sorted(unique, key=lambda r: r.score, reverse=True)


# =============================================================================
# Recommender
# =============================================================================

class BehaviorRecommender:
    """User-based, item-based and popular recommendation sources."""

    def __init__(
        self,
        store: Optional[ContentStore] = None,
        profile_service: Optional[UserProfileService] = None,
        scores: RecommendationScores = DEFAULT_RECOMMENDATION_SCORES,
    ):
        self.store = store or get_content_store()
        self.profile_service = profile_service or get_profile_service()
        self.scores = scores

    def recommend(
        self,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 10,
        exclude_viewed: bool = True,
        profile: Optional[UserPreferenceProfile] = None,
    ) -> List[RecommendationResult]:
        """
        Hybrid recommendations: user-based plus item-based, popular when
        both are empty. Deduplicated, sorted by score and cut to ``limit``.
        """
        try:
            recommendations: List[RecommendationResult] = []
            if user_id:
                recommendations.extend(self.user_based(
                    user_id, exclude_viewed=exclude_viewed, profile=profile
                ))
            if entity_id and entity_type:
                recommendations.extend(self.similar_content(entity_type, entity_id, limit))
            if not recommendations:
                recommendations = self.popular(entity_type, limit)
            return dedupe_recommendations(recommendations)[:limit]
        except Exception as e:
            logger.warning("Failed to get recommendations", user_id=user_id, error=str(e))
            return []

    # =========================================================================
    # User-based
    # =========================================================================

    def user_based(
        self,
        user_id: str,
        exclude_viewed: bool = True,
        profile: Optional[UserPreferenceProfile] = None,
    ) -> List[RecommendationResult]:
        """
        For each of the user's top 3 craft types: up to 3 verified craftsmen
        and up to 2 active courses, scored higher when the course price is
        in the user's range.
        """
        profile = profile or self.profile_service.get_preferences(user_id)
        excluded = profile.viewed_ids if exclude_viewed else []
        language = profile.preferred_language
        s = self.scores

        recommendations = []
        for craft_type in profile.craft_types[:3]:
            craftsmen = self.store.fetch("craftsman", EntityFilter(
                equals={"verification_status": VERIFIED_STATUS},
                contains={"craft_specialties": [craft_type]},
                exclude_ids=excluded,
                limit=3,
            ))
            for row in craftsmen:
                recommendations.append(recommendation_from_row(
                    "craftsman", row, s.PERSONAL_CRAFTSMAN,
                    ITEM_REASONS["interest_craftsman"].format(craft_type=craft_type),
                    language=language,
                    craft_type=craft_type,
                ))

            courses = self.store.fetch("course", EntityFilter(
                equals={"status": ACTIVE_STATUS, "craft_category": craft_type},
                exclude_ids=excluded,
                limit=2,
            ))
            for row in courses:
                price = to_float(row.get("price")) or 0.0
                in_range = profile.price_range is None or profile.price_range.contains(price)
                recommendations.append(recommendation_from_row(
                    "course", row,
                    s.PERSONAL_COURSE_IN_RANGE if in_range else s.PERSONAL_COURSE,
                    ITEM_REASONS["interest_course"].format(craft_type=craft_type),
                    language=language,
                    craft_type=craft_type,
                ))

        return recommendations

    # =========================================================================
    # Item-based
    # =========================================================================

    def similar_content(
        self,
        entity_type: str,
        entity_id: str,
        limit: int = 5,
    ) -> List[RecommendationResult]:
        """Entities similar to ``entity_id``; the entity itself never appears."""
        try:
            source = self.store.get_entity(entity_type, entity_id)
            if source is None:
                return []
            flt = self._similar_filter(entity_type, source)
            if flt is None:
                return []
            flt.exclude_ids = [str(entity_id)]
            flt.limit = limit
            rows = self.store.fetch(entity_type, flt)
        except Exception as e:
            logger.warning(
                "Failed to get similar content",
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(e),
            )
            return []

        score = self.scores.SIMILAR[entity_type]
        reason = ITEM_REASONS[f"similar_{entity_type}"]
        return [recommendation_from_row(entity_type, row, score, reason) for row in rows]

    @staticmethod
    def _similar_filter(entity_type: str, source: Dict[str, Any]) -> Optional[EntityFilter]:
        if entity_type == "craftsman":
            any_of = []
            specialties = source.get("craft_specialties") or []
            if specialties:
                any_of.append(Condition("craft_specialties", "ov", list(specialties)))
            if source.get("workshop_location"):
                any_of.append(Condition("workshop_location", "eq", source["workshop_location"]))
            if not any_of:
                return None
            return EntityFilter(equals={"verification_status": VERIFIED_STATUS}, any_of=any_of)
        if entity_type == "course":
            return EntityFilter(equals={
                "status": ACTIVE_STATUS,
                "craft_category": source.get("craft_category"),
            })
        if entity_type == "product":
            return EntityFilter(
                equals={"status": ACTIVE_STATUS, "craft_category": source.get("craft_category")},
                greater_than={"inventory_quantity": 0},
            )
        if entity_type == "media":
            return EntityFilter(equals={"file_type": source.get("file_type")})
        return None

    # =========================================================================
    # Popular
    # =========================================================================

    def popular(self, entity_type: Optional[str] = None, limit: int = 10) -> List[RecommendationResult]:
        """Newest verified craftsmen and newest active courses, half the limit each."""
        per_type = math.ceil(limit / 2)
        s = self.scores
        recommendations: List[RecommendationResult] = []
        try:
            if entity_type in (None, "craftsman"):
                rows = self.store.fetch("craftsman", EntityFilter(
                    equals={"verification_status": VERIFIED_STATUS},
                    order_by="created_at",
                    limit=per_type,
                ))
                recommendations.extend(
                    recommendation_from_row(
                        "craftsman", row, s.POPULAR_CRAFTSMAN, ITEM_REASONS["popular_craftsman"]
                    )
                    for row in rows
                )
            if entity_type in (None, "course"):
                rows = self.store.fetch("course", EntityFilter(
                    equals={"status": ACTIVE_STATUS},
                    order_by="created_at",
                    limit=per_type,
                ))
                recommendations.extend(
                    recommendation_from_row(
                        "course", row, s.POPULAR_COURSE, ITEM_REASONS["popular_course"]
                    )
                    for row in rows
                )
        except Exception as e:
            logger.warning("Failed to get popular recommendations", error=str(e))
        return recommendations


_recommender: Optional[BehaviorRecommender] = None
_lock = threading.Lock()


def get_behavior_recommender() -> BehaviorRecommender:
    """Get or create the BehaviorRecommender singleton (thread-safe)."""
    global _recommender
    if _recommender is None:
        with _lock:
            if _recommender is None:
                _recommender = BehaviorRecommender()
    return _recommender
