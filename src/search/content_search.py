"""
Cross-entity content search.

Pipeline:
1. Fan out the four entity adapters and the facet aggregator on a thread pool
2. Concatenate adapter output in fixed entity order (craftsman, course,
   product, media); a failed or timed-out adapter contributes nothing
3. Stable sort of the merged list by ``sort_by`` / ``sort_order``
4. Paginate by slicing ``[offset, offset + limit)``

No store can rank across entity types, so every request merges the full
candidate set (at most four fetch caps) before paginating.
"""

import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence

from config.constants import CONTENT_CATEGORIES
from config.settings import get_settings
from core.concurrency import fan_out
from core.logging import get_logger
from search.adapters import EntitySearchAdapter, FacetAggregator, default_adapters
from search.models import (
    ContentCategory,
    SearchFacets,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SortBy,
    SortOrder,
)
from search.store import ContentStore, get_content_store

logger = get_logger(__name__)

_FACETS = "facets"


@dataclass
class CandidateSet:
    """Merged, sorted, unpaginated adapter output plus facets."""
    results: List[SearchResult]
    facets: SearchFacets


def sort_results(
    results: Sequence[SearchResult],
    sort_by: SortBy,
    sort_order: SortOrder,
) -> List[SearchResult]:
    """
    Stable sort; equal keys keep concatenation order in both directions.

    ``popularity`` has no stored signal at this stage and orders by
    ``created_at`` like ``date``.
    """
    if sort_by == SortBy.RELEVANCE:
        key = lambda r: r.relevance_score or 0.0
    else:
        key = lambda r: r.created_at
    return sorted(results, key=key, reverse=sort_order == SortOrder.DESC)


def paginate(results: Sequence[SearchResult], offset: int, limit: int) -> List[SearchResult]:
    return list(results[offset:offset + limit])


class ContentSearchService:
    """Fan-out search over the four entity adapters."""

    def __init__(
        self,
        store: Optional[ContentStore] = None,
        adapters: Optional[List[EntitySearchAdapter]] = None,
        facets: Optional[FacetAggregator] = None,
        timeout: Optional[float] = 5.0,
        fetch_cap: int = 50,
    ):
        self.store = store or get_content_store()
        self.adapters = adapters if adapters is not None else default_adapters(self.store, fetch_cap)
        self.facets = facets or FacetAggregator(self.store)
        self.timeout = timeout

    def collect(self, query: SearchQuery) -> CandidateSet:
        """Merged candidates for ``query``, sorted but not paginated."""
        tasks = {
            adapter.entity_type.value: (lambda a=adapter: a.search(query))
            for adapter in self.adapters
        }
        tasks[_FACETS] = self.facets.aggregate

        outputs = fan_out(
            tasks,
            timeout=self.timeout,
            default_factory=lambda key: SearchFacets() if key == _FACETS else [],
            max_workers=len(tasks),
            label="Entity search",
        )

        merged: List[SearchResult] = []
        for adapter in self.adapters:
            merged.extend(outputs[adapter.entity_type.value])

        logger.debug(
            "Content search merged",
            query=query.query,
            counts={a.entity_type.value: len(outputs[a.entity_type.value]) for a in self.adapters},
        )
        return CandidateSet(
            results=sort_results(merged, query.sort_by, query.sort_order),
            facets=outputs[_FACETS],
        )

    def search(self, query: SearchQuery) -> SearchResponse:
        candidates = self.collect(query)
        return SearchResponse(
            results=paginate(candidates.results, query.offset, query.limit),
            total=len(candidates.results),
            facets=candidates.facets,
            query=query,
        )

    # =========================================================================
    # Content categories
    # =========================================================================

    def get_categories(self) -> List[ContentCategory]:
        return [ContentCategory(**c) for c in CONTENT_CATEGORIES]

    def get_category_by_id(self, category_id: str) -> Optional[ContentCategory]:
        for category in self.get_categories():
            if category.id == category_id:
                return category
        return None

    def get_categories_by_craft_type(self, craft_type: str) -> List[ContentCategory]:
        return [c for c in self.get_categories() if craft_type in c.craft_types]


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[ContentSearchService] = None
_lock = threading.Lock()


def get_content_search_service() -> ContentSearchService:
    """Get or create the ContentSearchService singleton (thread-safe)."""
    global _service
    if _service is None:
        with _lock:
            if _service is None:
                settings = get_settings()
                _service = ContentSearchService(
                    timeout=settings.store_timeout_seconds,
                    fetch_cap=settings.search_fetch_cap,
                )
    return _service
