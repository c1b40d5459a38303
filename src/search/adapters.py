"""
Entity search adapters and facet aggregation.

Each adapter translates a generic ``SearchQuery`` into an entity-specific
``EntityFilter`` (status gate, optional craft-type equality, optional
case-insensitive substring match over the entity's text columns), fetches up to
the per-entity cap and maps store rows into ``SearchResult``s.

The facet aggregator ignores the query's text filter entirely: facets describe
the catalogue, not the current page.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config.constants import (
    ACTIVE_STATUS,
    CATEGORY_LABELS,
    CONTENT_CATEGORIES,
    ENTITY_TYPE_ORDER,
    VERIFIED_STATUS,
)
from core.logging import get_logger
from core.utils import embedded_email, parse_timestamp, safe_get, to_float
from search.i18n import extract_locale, extract_text
from search.models import EntityType, Facet, SearchFacets, SearchQuery, SearchResult
from search.store import Condition, ContentStore, EntityFilter

logger = get_logger(__name__)

# Rows without a creation time sort as oldest
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_CATEGORY_CRAFT_TYPE: Dict[str, str] = {
    c["id"]: c["craft_types"][0] for c in CONTENT_CATEGORIES if len(c["craft_types"]) == 1
}


def effective_craft_type(query: SearchQuery) -> Optional[str]:
    """Explicit craft type, else the single craft type of a content category."""
    if query.craft_type:
        return query.craft_type
    return _CATEGORY_CRAFT_TYPE.get(query.category or "")


def targets(query: SearchQuery, entity_type: str) -> bool:
    """Whether ``query.category`` leaves ``entity_type`` in scope."""
    if query.category in ENTITY_TYPE_ORDER:
        return query.category == entity_type
    return True


class EntitySearchAdapter:
    """Base adapter: subclasses define the filter and the row mapping."""

    entity_type: EntityType

    def __init__(self, store: Optional[ContentStore], fetch_cap: int = 50):
        self.store = store
        self.fetch_cap = fetch_cap

    def build_filter(self, query: SearchQuery) -> EntityFilter:
        raise NotImplementedError

    def to_result(self, row: Dict[str, Any], query: SearchQuery) -> SearchResult:
        raise NotImplementedError

    def search(self, query: SearchQuery) -> List[SearchResult]:
        """Fetch and map; an out-of-scope category yields nothing."""
        if not targets(query, self.entity_type.value):
            return []
        flt = self.build_filter(query)
        flt.order_by = "created_at"
        flt.limit = self.fetch_cap
        rows = self.store.fetch(self.entity_type.value, flt)
        results = []
        for row in rows:
            try:
                results.append(self.to_result(row, query))
            except Exception as e:
                logger.warning(
                    "Skipping unmappable row",
                    entity_type=self.entity_type.value,
                    entity_id=row.get("id"),
                    error=str(e),
                )
        return results

    @staticmethod
    def _created_at(row: Dict[str, Any]) -> datetime:
        return parse_timestamp(row.get("created_at")) or EPOCH


class CraftsmanSearchAdapter(EntitySearchAdapter):
    entity_type = EntityType.CRAFTSMAN

    def build_filter(self, query: SearchQuery) -> EntityFilter:
        flt = EntityFilter(equals={"verification_status": VERIFIED_STATUS})
        craft_type = effective_craft_type(query)
        if craft_type:
            flt.contains["craft_specialties"] = [craft_type]
        if query.query:
            flt.any_of = [
                Condition("workshop_location", "ilike", query.query),
                Condition("craft_specialties", "cs", [query.query]),
            ]
        return flt

    def to_result(self, row: Dict[str, Any], query: SearchQuery) -> SearchResult:
        language = query.language
        bio = row.get("bio")
        specialties = list(row.get("craft_specialties") or [])
        wanted = effective_craft_type(query)
        craft_type = wanted if wanted in specialties else (specialties[0] if specialties else None)
        return SearchResult(
            id=str(row["id"]),
            type=EntityType.CRAFTSMAN,
            title=(
                extract_text(bio, language, "name")
                or embedded_email(row)
                or "Craftsman"
            ),
            description=extract_text(bio, language, "description"),
            category=EntityType.CRAFTSMAN.value,
            craft_type=craft_type,
            image_url=row.get("avatar_url"),
            url=f"/craftsmen/{row['id']}",
            relevance_score=to_float(row.get("relevance_score")),
            created_at=self._created_at(row),
            metadata={
                "experience_years": row.get("experience_years"),
                "workshop_location": row.get("workshop_location"),
                "specialties": specialties,
                "verification_status": row.get("verification_status"),
                "language": extract_locale(bio, language, "name"),
            },
        )


class CourseSearchAdapter(EntitySearchAdapter):
    entity_type = EntityType.COURSE

    def build_filter(self, query: SearchQuery) -> EntityFilter:
        flt = EntityFilter(equals={"status": ACTIVE_STATUS})
        craft_type = effective_craft_type(query)
        if craft_type:
            flt.equals["craft_category"] = craft_type
        if query.query:
            flt.ilike["craft_category"] = query.query
        return flt

    def to_result(self, row: Dict[str, Any], query: SearchQuery) -> SearchResult:
        language = query.language
        title = row.get("title")
        return SearchResult(
            id=str(row["id"]),
            type=EntityType.COURSE,
            title=extract_text(title, language) or row.get("craft_category") or "Course",
            description=extract_text(row.get("description"), language),
            category=EntityType.COURSE.value,
            craft_type=row.get("craft_category"),
            image_url=row.get("image_url"),
            url=f"/courses/{row['id']}",
            relevance_score=to_float(row.get("relevance_score")),
            created_at=self._created_at(row),
            metadata={
                "price": to_float(row.get("price")),
                "duration_hours": row.get("duration_hours"),
                "max_participants": row.get("max_participants"),
                "craftsman_id": row.get("craftsman_id"),
                "craftsman_name": safe_get(row, "craftsman_profiles", "users", "email"),
                "language": extract_locale(title, language),
            },
        )


class ProductSearchAdapter(EntitySearchAdapter):
    entity_type = EntityType.PRODUCT

    def build_filter(self, query: SearchQuery) -> EntityFilter:
        flt = EntityFilter(
            equals={"status": ACTIVE_STATUS},
            greater_than={"inventory_quantity": 0},
        )
        craft_type = effective_craft_type(query)
        if craft_type:
            flt.equals["craft_category"] = craft_type
        if query.query:
            flt.ilike["craft_category"] = query.query
        return flt

    def to_result(self, row: Dict[str, Any], query: SearchQuery) -> SearchResult:
        language = query.language
        name = row.get("name")
        images = row.get("images") or []
        return SearchResult(
            id=str(row["id"]),
            type=EntityType.PRODUCT,
            title=extract_text(name, language) or "Product",
            description=extract_text(row.get("description"), language),
            category=EntityType.PRODUCT.value,
            craft_type=row.get("craft_category"),
            image_url=images[0] if images else None,
            url=f"/products/{row['id']}",
            relevance_score=to_float(row.get("relevance_score")),
            created_at=self._created_at(row),
            metadata={
                "price": to_float(row.get("price")),
                "inventory_quantity": row.get("inventory_quantity"),
                "is_customizable": bool(row.get("is_customizable")),
                "craftsman_id": row.get("craftsman_id"),
                "craftsman_name": safe_get(row, "craftsman_profiles", "users", "email"),
                "language": extract_locale(name, language),
            },
        )


class MediaSearchAdapter(EntitySearchAdapter):
    entity_type = EntityType.MEDIA

    def build_filter(self, query: SearchQuery) -> EntityFilter:
        flt = EntityFilter()
        if query.file_type:
            flt.equals["file_type"] = query.file_type.upper()
        if query.query:
            flt.any_of = [
                Condition("metadata->>originalName", "ilike", query.query),
                Condition("metadata->>description", "ilike", query.query),
            ]
        return flt

    def to_result(self, row: Dict[str, Any], query: SearchQuery) -> SearchResult:
        meta = row.get("metadata") or {}
        file_type = (row.get("file_type") or "").upper()
        return SearchResult(
            id=str(row["id"]),
            type=EntityType.MEDIA,
            title=meta.get("originalName") or "Media File",
            description=meta.get("description"),
            category=EntityType.MEDIA.value,
            image_url=row.get("file_url") if file_type == "IMAGE" else meta.get("thumbnailUrl"),
            url=row["file_url"],
            relevance_score=to_float(row.get("relevance_score")),
            created_at=self._created_at(row),
            metadata={
                "file_type": file_type.lower() or None,
                "file_size": row.get("file_size"),
                "uploader_id": row.get("uploader_id"),
                "uploader": embedded_email(row),
            },
        )


def default_adapters(store: Optional[ContentStore], fetch_cap: int = 50) -> List[EntitySearchAdapter]:
    """One adapter per entity type, in concatenation order."""
    return [
        CraftsmanSearchAdapter(store, fetch_cap),
        CourseSearchAdapter(store, fetch_cap),
        ProductSearchAdapter(store, fetch_cap),
        MediaSearchAdapter(store, fetch_cap),
    ]


_ROW_MAPPERS: Dict[str, EntitySearchAdapter] = {
    adapter.entity_type.value: adapter for adapter in default_adapters(store=None)
}


def row_to_result(entity_type: str, row: Dict[str, Any], language: str) -> SearchResult:
    """Map a raw entity row the way its search adapter does."""
    return _ROW_MAPPERS[entity_type].to_result(row, SearchQuery(language=language))


# =============================================================================
# Facets
# =============================================================================

_CATEGORY_FILTERS = {
    "craftsman": lambda: EntityFilter(equals={"verification_status": VERIFIED_STATUS}),
    "course": lambda: EntityFilter(equals={"status": ACTIVE_STATUS}),
    "product": lambda: EntityFilter(
        equals={"status": ACTIVE_STATUS}, greater_than={"inventory_quantity": 0}
    ),
    "media": lambda: EntityFilter(),
}


class FacetAggregator:
    """
    Catalogue-wide facet counts.

    Each facet group degrades on its own: a failed lookup leaves that group
    empty (or that category at 0) and the others intact.
    """

    def __init__(self, store: ContentStore):
        self.store = store

    def category_facets(self) -> List[Facet]:
        facets = []
        for entity_type in ENTITY_TYPE_ORDER:
            try:
                count = self.store.count(entity_type, _CATEGORY_FILTERS[entity_type]())
            except Exception as e:
                logger.warning("Category facet count failed", entity_type=entity_type, error=str(e))
                count = 0
            facets.append(Facet(
                name=entity_type, count=count, label=CATEGORY_LABELS[entity_type]
            ))
        return facets

    def craft_type_facets(self) -> List[Facet]:
        try:
            rows = self.store.column_values(
                "craftsman", "craft_specialties", _CATEGORY_FILTERS["craftsman"]()
            )
        except Exception as e:
            logger.warning("Craft type facets failed", error=str(e))
            return []
        counts: Counter = Counter()
        for specialties in rows:
            counts.update(s for s in (specialties or []) if s)
        return _to_facets(counts)

    def file_type_facets(self) -> List[Facet]:
        try:
            rows = self.store.column_values("media", "file_type")
        except Exception as e:
            logger.warning("File type facets failed", error=str(e))
            return []
        return _to_facets(Counter(str(t).lower() for t in rows if t))

    def aggregate(self) -> SearchFacets:
        return SearchFacets(
            categories=self.category_facets(),
            craft_types=self.craft_type_facets(),
            file_types=self.file_type_facets(),
        )


def _to_facets(counts: Counter) -> List[Facet]:
    """Largest count first, then name."""
    return [
        Facet(name=name, count=count)
        for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
