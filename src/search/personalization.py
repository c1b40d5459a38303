"""
Preference-profile boosts for search results.

Additive boosts on top of the current score:
- craft type at rank ``i`` of ``N`` preferred craft types: ``(N - i) * 0.1``
- price inside the profile's preferred range: ``+0.2``
- content resolved in the user's preferred language: ``+0.1``

The boosted score is clamped to [0, 1].
"""

import threading
from typing import List, Optional, Sequence

from config.constants import DEFAULT_PERSONALIZATION_BOOSTS, PersonalizationBoosts
from core.logging import get_logger
from core.utils import clamp, to_float
from recs.behavior import UserProfileService, get_profile_service
from recs.models import UserPreferenceProfile
from search.models import SearchResponse, SearchResult

logger = get_logger(__name__)


class PersonalizationBooster:
    """Re-scores results against a user's preference profile."""

    def __init__(
        self,
        profile_service: Optional[UserProfileService] = None,
        boosts: PersonalizationBoosts = DEFAULT_PERSONALIZATION_BOOSTS,
    ):
        self.profile_service = profile_service or get_profile_service()
        self.boosts = boosts

    def compute_boost(self, result: SearchResult, profile: UserPreferenceProfile) -> float:
        boost = 0.0

        if result.craft_type and result.craft_type in profile.craft_types:
            rank = profile.craft_types.index(result.craft_type)
            boost += (len(profile.craft_types) - rank) * self.boosts.CRAFT_TYPE_STEP

        price = to_float(result.metadata.get("price"))
        # Free or unpriced items never match a price band
        if profile.price_range is not None and (price or 0) > 0:
            if profile.price_range.contains(price):
                boost += self.boosts.PRICE_RANGE

        if result.metadata.get("language") == profile.preferred_language:
            boost += self.boosts.LANGUAGE

        return boost

    def boost_results(
        self,
        results: Sequence[SearchResult],
        profile: UserPreferenceProfile,
    ) -> List[SearchResult]:
        """Boosted copies, highest score first (ties keep input order)."""
        boosted = []
        for result in results:
            boost = self.compute_boost(result, profile)
            boosted.append(result.model_copy(update={
                "relevance_score": clamp((result.relevance_score or 0.0) + boost),
                "metadata": {**result.metadata, "personalized_boost": boost},
            }))
        boosted.sort(key=lambda r: r.relevance_score, reverse=True)
        return boosted

    def personalize_results(
        self,
        results: Sequence[SearchResult],
        user_id: str,
    ) -> Optional[List[SearchResult]]:
        """Boosted results, or None when the profile is unavailable."""
        try:
            profile = self.profile_service.get_preferences(user_id)
            return self.boost_results(results, profile)
        except Exception as e:
            logger.warning("Personalization failed", user_id=user_id, error=str(e))
            return None

    def personalize(self, response: SearchResponse, user_id: str) -> SearchResponse:
        """
        Re-order one response page for ``user_id``.

        A profile failure returns the response unchanged.
        """
        results = self.personalize_results(response.results, user_id)
        if results is None:
            return response
        return response.model_copy(update={"results": results, "personalized": True})


_booster: Optional[PersonalizationBooster] = None
_lock = threading.Lock()


def get_personalization_booster() -> PersonalizationBooster:
    """Get or create the PersonalizationBooster singleton (thread-safe)."""
    global _booster
    if _booster is None:
        with _lock:
            if _booster is None:
                _booster = PersonalizationBooster()
    return _booster
