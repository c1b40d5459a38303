"""
Pydantic models for behavior events, preference profiles and recommendations.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.utils import utc_now
from search.models import EntityType, EventType


class SectionType(str, Enum):
    PERSONAL = "personal"
    TRENDING = "trending"
    SIMILAR = "similar"
    CATEGORY = "category"
    LOCATION = "location"


class CurrentPage(str, Enum):
    HOME = "home"
    CRAFTSMAN = "craftsman"
    COURSE = "course"
    PRODUCT = "product"
    SEARCH = "search"


# ============================================================================
# Behavior Log
# ============================================================================

class BehaviorEvent(BaseModel):
    """An immutable user-interaction record in the append-only event log."""
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    event_type: EventType
    entity_type: EntityType
    entity_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class PriceRange(BaseModel):
    min: float
    max: float

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max


class ViewRecord(BaseModel):
    entity_type: str
    entity_id: str
    timestamp: Optional[datetime] = None
    duration: Optional[float] = None


class UserPreferenceProfile(BaseModel):
    """Preference profile derived from a user's recent behavior events."""
    user_id: str
    craft_types: List[str] = Field(
        default_factory=list, description="Highest affinity first"
    )
    preferred_language: str = "zh-HK"
    price_range: Optional[PriceRange] = None
    interests: List[str] = Field(default_factory=list)
    view_history: List[ViewRecord] = Field(default_factory=list)

    @property
    def viewed_ids(self) -> List[str]:
        return [record.entity_id for record in self.view_history]


# ============================================================================
# Recommendations
# ============================================================================

class RecommendationResult(BaseModel):
    id: str
    type: EntityType
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    url: str
    score: float = Field(..., description="Final score, 0-1 intended")
    reason: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def craft_type(self) -> Optional[str]:
        return self.metadata.get("craft_type")


class RecommendationSection(BaseModel):
    title: str
    subtitle: Optional[str] = None
    type: SectionType
    items: List[RecommendationResult] = Field(default_factory=list)
    reason: str


class RecommendationContext(BaseModel):
    """Request-scoped browsing context driving the composer."""
    user_id: Optional[str] = None
    current_page: CurrentPage = CurrentPage.HOME
    current_entity_id: Optional[str] = None
    current_entity_type: Optional[EntityType] = None
    user_location: Optional[str] = None

    @model_validator(mode="after")
    def validate_entity_pair(self):
        if (self.current_entity_id is None) != (self.current_entity_type is None):
            raise ValueError(
                "current_entity_id and current_entity_type must be given together"
            )
        return self


class RecommendationConfig(BaseModel):
    max_recommendations: int = Field(20, ge=1, le=100)
    diversity_factor: float = Field(0.3, ge=0.0, le=1.0, description="0 disables diversity")


class RecommendationRequest(BaseModel):
    context: RecommendationContext = Field(default_factory=RecommendationContext)
    config: Optional[RecommendationConfig] = None
