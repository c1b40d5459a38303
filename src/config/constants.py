"""
Application constants and algorithm configuration.

These are values that don't change based on environment but may need
to be tuned or referenced across the codebase.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple


# =============================================================================
# Languages
# =============================================================================

SUPPORTED_LANGUAGES: Tuple[str, ...] = ("zh-HK", "zh-CN", "en")
DEFAULT_LANGUAGE = "zh-HK"


# =============================================================================
# Entity Types
# =============================================================================

# Concatenation order of adapter output; also the tie-break priority
ENTITY_TYPE_ORDER: Tuple[str, ...] = ("craftsman", "course", "product", "media")

ENTITY_TABLES: Dict[str, str] = {
    "craftsman": "craftsman_profiles",
    "course": "courses",
    "product": "products",
    "media": "media_files",
}

EVENTS_TABLE = "user_behavior_events"
USERS_TABLE = "users"

VERIFIED_STATUS = "VERIFIED"
ACTIVE_STATUS = "ACTIVE"


# =============================================================================
# Vocabularies
# =============================================================================

CRAFT_TYPES: Tuple[str, ...] = ("手雕麻將", "吹糖", "竹編", "打鐵", "製香", "紮作")

# Localized labels for the four entity-type categories
CATEGORY_LABELS: Dict[str, str] = {
    "craftsman": "師傅",
    "course": "課程",
    "product": "產品",
    "media": "媒體",
}

DEFAULT_POPULAR_QUERIES: Tuple[str, ...] = ("手雕麻將", "吹糖", "竹編", "打鐵", "製香")

POPULAR_SEARCH_TERMS: Tuple[str, ...] = (
    "手雕麻將", "吹糖", "竹編", "打鐵", "製香", "紮作",
    "傳統工藝", "手工藝", "課程", "產品",
)


# =============================================================================
# Behavior Signals
# =============================================================================

EVENT_WEIGHTS: Dict[str, int] = {
    "view": 1,
    "click": 2,
    "search": 1,
    "bookmark": 3,
    "share": 4,
    "purchase": 5,
}

POPULARITY_EVENT_TYPES: FrozenSet[str] = frozenset({"view", "click", "purchase", "bookmark"})
TRENDING_EVENT_TYPES: FrozenSet[str] = frozenset({"view", "click", "bookmark"})


@dataclass(frozen=True)
class RankingWeights:
    """Weights of the four ranking signals (sum to 1)."""

    RELEVANCE: float = 0.4
    POPULARITY: float = 0.3
    QUALITY: float = 0.2
    RECENCY: float = 0.1

    # Interactions that saturate the popularity signal
    POPULARITY_SATURATION: int = 100
    RECENCY_HORIZON_DAYS: int = 365


DEFAULT_RANKING_WEIGHTS = RankingWeights()


@dataclass(frozen=True)
class PersonalizationBoosts:
    """Additive boosts applied from a user preference profile."""

    CRAFT_TYPE_STEP: float = 0.1
    PRICE_RANGE: float = 0.2
    LANGUAGE: float = 0.1


DEFAULT_PERSONALIZATION_BOOSTS = PersonalizationBoosts()


# =============================================================================
# Recommendation Sections
# =============================================================================

@dataclass(frozen=True)
class RecommendationScores:
    """Fixed base scores assigned per recommendation source."""

    TRENDING: Dict[str, float] = field(default_factory=lambda: {
        "craftsman": 0.9,
        "course": 0.8,
    })
    PERSONAL_CRAFTSMAN: float = 0.8
    PERSONAL_COURSE_IN_RANGE: float = 0.9
    PERSONAL_COURSE: float = 0.7
    SIMILAR: Dict[str, float] = field(default_factory=lambda: {
        "craftsman": 0.7,
        "course": 0.8,
        "product": 0.8,
        "media": 0.6,
    })
    POPULAR_CRAFTSMAN: float = 0.6
    POPULAR_COURSE: float = 0.5
    CATEGORY_COURSE: float = 0.7
    CATEGORY_PRODUCT: float = 0.6
    LOCATION_CRAFTSMAN: float = 0.8

    DIVERSITY_THRESHOLD: float = 0.3
    DIVERSITY_TYPE_STEP: float = 0.1
    DIVERSITY_CRAFT_TYPE_STEP: float = 0.05


DEFAULT_RECOMMENDATION_SCORES = RecommendationScores()

SECTION_COPY: Dict[str, Dict[str, str]] = {
    "personal": {"title": "為您推薦", "subtitle": "基於您的興趣和瀏覽記錄", "reason": "個人化推薦"},
    "similar": {"title": "相似{label}", "subtitle": "您可能也會喜歡", "reason": "相似內容推薦"},
    "trending": {"title": "熱門推薦", "subtitle": "最近最受歡迎的內容", "reason": "趨勢推薦"},
    "category": {"title": "相關推薦", "subtitle": "更多{craft_type}內容", "reason": "分類推薦"},
    "location": {"title": "附近推薦", "subtitle": "{location}地區的師傅", "reason": "地理位置推薦"},
    "popular": {"title": "熱門內容", "subtitle": "大家都在看的內容", "reason": "熱門推薦"},
}

# Per-item reasons attached by each recommendation source
ITEM_REASONS: Dict[str, str] = {
    "interest_craftsman": "基於您對{craft_type}的興趣",
    "interest_course": "推薦{craft_type}課程",
    "popular_craftsman": "熱門師傅",
    "popular_course": "熱門課程",
    "similar_craftsman": "相似師傅",
    "similar_course": "相似課程",
    "similar_product": "相似產品",
    "similar_media": "相似媒體",
    "category_course": "{craft_type}相關課程",
    "category_product": "{craft_type}相關產品",
    "location_craftsman": "附近師傅",
    "trending": "trending",
}


# =============================================================================
# Content Categories
# =============================================================================

CONTENT_CATEGORIES: List[Dict] = [
    {
        "id": "traditional-crafts",
        "name": {"zh-HK": "傳統工藝", "zh-CN": "传统工艺", "en": "Traditional Crafts"},
        "description": {
            "zh-HK": "香港傳統手工藝",
            "zh-CN": "香港传统手工艺",
            "en": "Hong Kong Traditional Handicrafts",
        },
        "level": 0,
        "craft_types": list(CRAFT_TYPES),
    },
    {
        "id": "mahjong-carving",
        "name": {"zh-HK": "手雕麻將", "zh-CN": "手雕麻将", "en": "Hand-carved Mahjong"},
        "parent_id": "traditional-crafts",
        "level": 1,
        "craft_types": ["手雕麻將"],
    },
    {
        "id": "sugar-blowing",
        "name": {"zh-HK": "吹糖", "zh-CN": "吹糖", "en": "Sugar Blowing"},
        "parent_id": "traditional-crafts",
        "level": 1,
        "craft_types": ["吹糖"],
    },
    {
        "id": "bamboo-weaving",
        "name": {"zh-HK": "竹編", "zh-CN": "竹编", "en": "Bamboo Weaving"},
        "parent_id": "traditional-crafts",
        "level": 1,
        "craft_types": ["竹編"],
    },
    {
        "id": "blacksmithing",
        "name": {"zh-HK": "打鐵", "zh-CN": "打铁", "en": "Blacksmithing"},
        "parent_id": "traditional-crafts",
        "level": 1,
        "craft_types": ["打鐵"],
    },
    {
        "id": "incense-making",
        "name": {"zh-HK": "製香", "zh-CN": "制香", "en": "Incense Making"},
        "parent_id": "traditional-crafts",
        "level": 1,
        "craft_types": ["製香"],
    },
    {
        "id": "paper-crafts",
        "name": {"zh-HK": "紮作", "zh-CN": "扎作", "en": "Paper Crafts"},
        "parent_id": "traditional-crafts",
        "level": 1,
        "craft_types": ["紮作"],
    },
]
