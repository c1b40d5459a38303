"""
Content Search Module: cross-entity search over the craft marketplace.

Provides:
- ContentStore / EntityFilter: filtered fetches against the Supabase tables
- extract_text / LocalizedText: multi-language display text
- Entity adapters + FacetAggregator (search.adapters)
- ContentSearchService: fan-out, merge, sort, paginate (search.content_search)
- RankingEngine and PersonalizationBooster (search.ranking, search.personalization)
- AutocompleteService and SearchAnalytics (search.autocomplete, search.analytics)
- EnhancedSearchService: the full search pipeline (search.enhanced_search)

Service modules read the behavior log from ``recs``, which itself imports the
store, so only the leaf modules are re-exported here.
"""

from search.i18n import LocalizedText, extract_text
from search.models import (
    EntityType,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SortBy,
    SortOrder,
)
from search.store import ContentStore, EntityFilter, get_content_store

__all__ = [
    "ContentStore",
    "EntityFilter",
    "get_content_store",
    "LocalizedText",
    "extract_text",
    "EntityType",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
    "SortBy",
    "SortOrder",
]
