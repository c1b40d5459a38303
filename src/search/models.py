"""
Pydantic models for the search API.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config.constants import CONTENT_CATEGORIES


# ============================================================================
# Enums
# ============================================================================

class EntityType(str, Enum):
    """The four searchable entity types (declaration order = tie-break priority)."""
    CRAFTSMAN = "craftsman"
    COURSE = "course"
    PRODUCT = "product"
    MEDIA = "media"


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    POPULARITY = "popularity"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class EventType(str, Enum):
    """Behavior event types recorded in the event log."""
    VIEW = "view"
    CLICK = "click"
    SEARCH = "search"
    PURCHASE = "purchase"
    BOOKMARK = "bookmark"
    SHARE = "share"


class SuggestionType(str, Enum):
    QUERY = "query"
    CATEGORY = "category"
    CRAFT_TYPE = "craftType"
    LOCATION = "location"


# ============================================================================
# Request Models
# ============================================================================

class SearchQuery(BaseModel):
    """A single search request. Immutable for the lifetime of the request."""
    model_config = ConfigDict(frozen=True)

    query: Optional[str] = Field(None, max_length=500, description="Free-text query")
    category: Optional[str] = Field(None, description="Entity type or content category id")
    craft_type: Optional[str] = Field(None, description="Craft specialty filter")
    language: str = Field("zh-HK", min_length=2, max_length=16, description="Display locale")
    file_type: Optional[str] = Field(None, description="Media file type filter (image, video, ...)")
    user_id: Optional[str] = Field(None, description="Requesting user (personalization/tracking)")

    # Pagination
    limit: int = Field(20, ge=1, le=100, description="Page size")
    offset: int = Field(0, ge=0, description="Results to skip")

    sort_by: SortBy = Field(SortBy.RELEVANCE, description="Sort key")
    sort_order: SortOrder = Field(SortOrder.DESC, description="Sort direction")

    @field_validator("query", "category", "craft_type", "file_type", "user_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        if v is None:
            return v
        allowed = {e.value for e in EntityType} | {c["id"] for c in CONTENT_CATEGORIES}
        if v not in allowed:
            raise ValueError(f"Unknown category '{v}'")
        return v


class EnhancedSearchRequest(SearchQuery):
    """Search request with the personalization/tracking switches."""
    personalize: bool = Field(True, description="Apply preference-profile boosts when user_id is set")
    track_search: bool = Field(True, description="Record a search behavior event")
    include_recommendations: bool = Field(False, description="Attach behavior-based recommendations")

    def to_query(self) -> SearchQuery:
        return SearchQuery(**self.model_dump(include=set(SearchQuery.model_fields)))


class SearchClickRequest(BaseModel):
    """Record a click on a search result."""
    user_id: str = Field(..., min_length=1)
    result_id: str = Field(..., min_length=1)
    result_type: EntityType
    search_query: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)


# ============================================================================
# Response Models
# ============================================================================

class SearchResult(BaseModel):
    """One hit from any of the four entity adapters."""
    id: str
    type: EntityType
    title: str
    description: Optional[str] = None
    category: str
    craft_type: Optional[str] = None
    image_url: Optional[str] = None
    url: str
    relevance_score: Optional[float] = Field(
        None, description="Raw textual-match score (absent when the store supplies none)"
    )
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Facet(BaseModel):
    name: str
    count: int
    label: Optional[str] = Field(None, description="Display label (category facets)")


class SearchFacets(BaseModel):
    categories: List[Facet] = Field(default_factory=list)
    craft_types: List[Facet] = Field(default_factory=list)
    file_types: List[Facet] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Paginated results with facets and an echo of the originating query."""
    results: List[SearchResult]
    total: int = Field(..., ge=0, description="Size of the merged, unpaginated result set")
    facets: SearchFacets = Field(default_factory=SearchFacets)
    query: SearchQuery
    recommendations: List[SearchResult] = Field(default_factory=list)
    personalized: bool = False

    @model_validator(mode="after")
    def validate_page_size(self):
        if len(self.results) > self.query.limit:
            raise ValueError(
                f"page holds {len(self.results)} results, more than limit {self.query.limit}"
            )
        return self


class SearchSuggestion(BaseModel):
    """An autocomplete suggestion from one of the four sources."""
    text: str
    type: SuggestionType
    count: Optional[int] = None
    highlighted: Optional[str] = None


class AutocompleteResponse(BaseModel):
    suggestions: List[SearchSuggestion]
    popular_queries: List[str]
    recent_searches: List[str]


class QueryCount(BaseModel):
    query: str
    count: int


class CategoryCount(BaseModel):
    category: str
    count: int


class DailyCount(BaseModel):
    date: str
    count: int


class SearchAnalyticsReport(BaseModel):
    """Read-side search report over a [start, end) window."""
    total_searches: int = 0
    popular_queries: List[QueryCount] = Field(default_factory=list)
    popular_categories: List[CategoryCount] = Field(default_factory=list)
    search_trends: List[DailyCount] = Field(default_factory=list)
    avg_results_per_search: float = 0.0
    click_through_rate: float = 0.0


class ContentCategory(BaseModel):
    """Node of the static craft category tree."""
    id: str
    name: Dict[str, str]
    description: Optional[Dict[str, str]] = None
    parent_id: Optional[str] = None
    level: int = 0
    craft_types: List[str] = Field(default_factory=list)
