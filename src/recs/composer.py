"""
Recommendation composer.

Assembles the non-empty sections for a browsing context, in this order:

    personal  (user_id)
    similar   (current_entity_id + current_entity_type)
    trending  (always)
    category  (user_id; the user's top craft type)
    location  (user_location)

Sections are computed concurrently. Each one goes through the diversity
filter on its own; a section that fails is logged and treated as empty. When
every attempted section is empty the result is a single "popular" section
from the unfiltered behavior recommender.
"""

import math
import threading
from typing import Callable, Dict, List, Optional

from config.constants import (
    ACTIVE_STATUS,
    CATEGORY_LABELS,
    DEFAULT_RECOMMENDATION_SCORES,
    ITEM_REASONS,
    SECTION_COPY,
    VERIFIED_STATUS,
    RecommendationScores,
)
from config.settings import get_settings
from core.concurrency import fan_out
from core.logging import get_logger
from recs.behavior import UserProfileService, get_profile_service
from recs.diversity import apply_diversity
from recs.models import (
    RecommendationConfig,
    RecommendationContext,
    RecommendationSection,
    SectionType,
    UserPreferenceProfile,
)
from recs.recommender import (
    BehaviorRecommender,
    get_behavior_recommender,
    recommendation_from_row,
)
from recs.trending import TrendingAggregator, get_trending_aggregator
from search.store import ContentStore, EntityFilter, get_content_store

logger = get_logger(__name__)


def _section(kind: str, section_type: SectionType, items, **fmt) -> RecommendationSection:
    copy = SECTION_COPY[kind]
    return RecommendationSection(
        title=copy["title"].format(**fmt),
        subtitle=copy["subtitle"].format(**fmt),
        type=section_type,
        items=list(items),
        reason=copy["reason"],
    )


class RecommendationComposer:
    """Builds ordered recommendation sections for a context."""

    def __init__(
        self,
        recommender: Optional[BehaviorRecommender] = None,
        trending: Optional[TrendingAggregator] = None,
        profile_service: Optional[UserProfileService] = None,
        store: Optional[ContentStore] = None,
        default_config: Optional[RecommendationConfig] = None,
        scores: RecommendationScores = DEFAULT_RECOMMENDATION_SCORES,
        timeout: Optional[float] = 5.0,
    ):
        self.recommender = recommender or get_behavior_recommender()
        self.trending = trending or get_trending_aggregator()
        self.profile_service = profile_service or get_profile_service()
        self.store = store or get_content_store()
        self.default_config = default_config or RecommendationConfig()
        self.scores = scores
        self.timeout = timeout

    def compose(
        self,
        context: RecommendationContext,
        config: Optional[RecommendationConfig] = None,
    ) -> List[RecommendationSection]:
        config = config or self.default_config

        profile = None
        if context.user_id:
            profile = self.profile_service.get_preferences(context.user_id)

        tasks: Dict[str, Callable[[], RecommendationSection]] = {}
        if context.user_id:
            tasks["personal"] = lambda: self.personal_section(context.user_id, config, profile)
        if context.current_entity_id and context.current_entity_type:
            tasks["similar"] = lambda: self.similar_section(
                context.current_entity_type.value, context.current_entity_id, config
            )
        tasks["trending"] = self.trending.section
        if context.user_id:
            tasks["category"] = lambda: self.category_section(profile)
        if context.user_location:
            tasks["location"] = lambda: self.location_section(context.user_location)

        built = fan_out(
            tasks,
            timeout=self.timeout,
            default_factory=lambda key: None,
            label="Recommendation section",
        )

        sections = []
        for key in tasks:
            section = self._diversify(built[key], config)
            if section is not None and section.items:
                sections.append(section)

        if not sections:
            sections.append(self._diversify(self.popular_section(config), config))

        logger.info(
            "Composed recommendations",
            user_id=context.user_id,
            sections=[s.type.value for s in sections],
            items=sum(len(s.items) for s in sections),
        )
        return sections

    @staticmethod
    def _diversify(
        section: Optional[RecommendationSection],
        config: RecommendationConfig,
    ) -> Optional[RecommendationSection]:
        if section is None:
            return None
        return section.model_copy(update={
            "items": apply_diversity(section.items, config.diversity_factor)
        })

    # =========================================================================
    # Sections
    # =========================================================================

    def personal_section(
        self,
        user_id: str,
        config: RecommendationConfig,
        profile: Optional[UserPreferenceProfile] = None,
    ) -> RecommendationSection:
        items = self.recommender.recommend(
            user_id=user_id,
            limit=math.ceil(config.max_recommendations * 0.4),
            exclude_viewed=True,
            profile=profile,
        )
        return _section("personal", SectionType.PERSONAL, items)

    def similar_section(
        self,
        entity_type: str,
        entity_id: str,
        config: RecommendationConfig,
    ) -> RecommendationSection:
        items = self.recommender.similar_content(
            entity_type, entity_id, math.ceil(config.max_recommendations * 0.3)
        )
        return _section("similar", SectionType.SIMILAR, items, label=CATEGORY_LABELS[entity_type])

    def category_section(self, profile: UserPreferenceProfile) -> RecommendationSection:
        """Three active courses and two in-stock products of the top craft type."""
        if not profile.craft_types:
            return _section("category", SectionType.CATEGORY, [], craft_type="")

        top = profile.craft_types[0]
        language = profile.preferred_language
        courses = self.store.fetch("course", EntityFilter(
            equals={"status": ACTIVE_STATUS, "craft_category": top},
            limit=3,
        ))
        products = self.store.fetch("product", EntityFilter(
            equals={"status": ACTIVE_STATUS, "craft_category": top},
            greater_than={"inventory_quantity": 0},
            limit=2,
        ))
        items = [
            recommendation_from_row(
                "course", row, self.scores.CATEGORY_COURSE,
                ITEM_REASONS["category_course"].format(craft_type=top),
                language=language,
            )
            for row in courses
        ] + [
            recommendation_from_row(
                "product", row, self.scores.CATEGORY_PRODUCT,
                ITEM_REASONS["category_product"].format(craft_type=top),
                language=language,
            )
            for row in products
        ]
        return _section("category", SectionType.CATEGORY, items, craft_type=top)

    def location_section(self, user_location: str) -> RecommendationSection:
        """Up to five verified craftsmen whose workshop location contains ``user_location``."""
        rows = self.store.fetch("craftsman", EntityFilter(
            equals={"verification_status": VERIFIED_STATUS},
            ilike={"workshop_location": user_location},
            limit=5,
        ))
        items = [
            recommendation_from_row(
                "craftsman", row, self.scores.LOCATION_CRAFTSMAN,
                ITEM_REASONS["location_craftsman"],
                location=row.get("workshop_location"),
            )
            for row in rows
        ]
        return _section("location", SectionType.LOCATION, items, location=user_location)

    def popular_section(self, config: RecommendationConfig) -> RecommendationSection:
        items = self.recommender.recommend(limit=config.max_recommendations)
        return _section("popular", SectionType.TRENDING, items)


_composer: Optional[RecommendationComposer] = None
_lock = threading.Lock()


def get_recommendation_composer() -> RecommendationComposer:
    """Get or create the RecommendationComposer singleton (thread-safe)."""
    global _composer
    if _composer is None:
        with _lock:
            if _composer is None:
                settings = get_settings()
                _composer = RecommendationComposer(
                    default_config=RecommendationConfig(
                        max_recommendations=settings.max_recommendations,
                        diversity_factor=settings.diversity_factor,
                    ),
                    timeout=settings.store_timeout_seconds,
                )
    return _composer
