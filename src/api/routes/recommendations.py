"""
Recommendation API Routes.
"""

from typing import List

from fastapi import APIRouter

from recs.composer import get_recommendation_composer
from recs.models import RecommendationRequest, RecommendationSection

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


@router.post(
    "",
    response_model=List[RecommendationSection],
    summary="Sectioned recommendations for a browsing context",
)
def recommendations(request: RecommendationRequest) -> List[RecommendationSection]:
    """
    Personal, similar, trending, category and location sections, each
    diversity-filtered. Falls back to a popular section when all are empty.
    """
    return get_recommendation_composer().compose(request.context, request.config)
