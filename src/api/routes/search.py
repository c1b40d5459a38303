"""
Search API Routes.

Enhanced content search, autocomplete, click tracking, analytics and the
content category taxonomy.

NOTE: Routes use `def` (not `async def`) because the underlying services
(Supabase client, thread-pool fan-outs) are synchronous. FastAPI runs sync
route handlers in a thread pool, so the event loop is never blocked.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query

from core.logging import get_logger
from core.utils import parse_timestamp
from search.analytics import get_search_analytics
from search.autocomplete import get_autocomplete_service
from search.content_search import get_content_search_service
from search.enhanced_search import get_enhanced_search_service
from search.models import (
    AutocompleteResponse,
    ContentCategory,
    EnhancedSearchRequest,
    SearchAnalyticsReport,
    SearchClickRequest,
    SearchResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/search", tags=["Search"])


# =============================================================================
# Search
# =============================================================================

@router.post(
    "",
    response_model=SearchResponse,
    summary="Enhanced content search",
)
def search(request: EnhancedSearchRequest) -> SearchResponse:
    """
    Search craftsmen, courses, products and media.

    Relevance searches for a known user are boosted by the user's preference
    profile and re-ranked by relevance, popularity, recency and quality.
    Failures degrade to an empty result page.
    """
    return get_enhanced_search_service().search(request)


# =============================================================================
# Autocomplete
# =============================================================================

@router.get(
    "/autocomplete",
    response_model=AutocompleteResponse,
    summary="Search autocomplete",
)
def autocomplete(
    q: str = Query("", max_length=200, description="Partial search text"),
    user_id: Optional[str] = Query(None, description="Adds recent searches"),
    limit: int = Query(10, ge=1, le=20, description="Max suggestions"),
) -> AutocompleteResponse:
    """
    Suggestions from past queries, categories, craft types and locations.

    An empty ``q`` returns popular queries only.
    """
    return get_autocomplete_service().autocomplete(query=q, user_id=user_id, limit=limit)


# =============================================================================
# Analytics
# =============================================================================

@router.post(
    "/click",
    summary="Record a search result click",
    status_code=201,
)
def record_click(request: SearchClickRequest) -> Dict[str, str]:
    """Record when a user clicks a search result."""
    recorded = get_search_analytics().track_click(
        user_id=request.user_id,
        result_id=request.result_id,
        result_type=request.result_type,
        search_query=request.search_query,
        position=request.position,
    )
    return {"status": "ok" if recorded else "not_recorded"}


@router.get(
    "/analytics",
    response_model=SearchAnalyticsReport,
    summary="Search analytics report",
)
def search_analytics(
    start: Optional[datetime] = Query(None, description="Window start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Window end (exclusive)"),
) -> SearchAnalyticsReport:
    # Naive bounds are UTC
    start, end = parse_timestamp(start), parse_timestamp(end)
    if start and end and start >= end:
        raise HTTPException(status_code=400, detail="start must be before end")
    return get_search_analytics().report(start=start, end=end)


# =============================================================================
# Categories
# =============================================================================

@router.get(
    "/categories",
    response_model=List[ContentCategory],
    summary="Content category taxonomy",
)
def list_categories(
    craft_type: Optional[str] = Query(None, description="Only categories covering this craft type"),
) -> List[ContentCategory]:
    service = get_content_search_service()
    if craft_type:
        return service.get_categories_by_craft_type(craft_type)
    return service.get_categories()


@router.get(
    "/categories/{category_id}",
    response_model=ContentCategory,
    summary="One content category",
)
def get_category(category_id: str) -> ContentCategory:
    category = get_content_search_service().get_category_by_id(category_id)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Category '{category_id}' not found")
    return category
