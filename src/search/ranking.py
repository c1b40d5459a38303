"""
Multi-signal ranking.

    combined = 0.4 * relevance + 0.3 * popularity + 0.2 * quality + 0.1 * recency

Sub-scores (each in [0, 1]):
- relevance: the store's textual-match score, 0 when absent
- popularity: view/click/purchase/bookmark events in the trailing window,
  saturating at 100 interactions
- quality: per-type completeness heuristics over the live entity row
- recency: linear decay to 0 over 365 days since creation

Popularity and quality need store lookups. They are batched per entity type
and fanned out concurrently; a failed or timed-out lookup scores 0 for the
results it covers and never fails the request.
"""

import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from config.constants import (
    DEFAULT_RANKING_WEIGHTS,
    ENTITY_TYPE_ORDER,
    POPULARITY_EVENT_TYPES,
    RankingWeights,
)
from config.settings import get_settings
from core.concurrency import fan_out
from core.logging import get_logger
from core.utils import clamp, to_float, utc_now, window_start
from recs.behavior import BehaviorLog, get_behavior_log
from search.models import SearchResult
from search.store import ContentStore, get_content_store

logger = get_logger(__name__)

RankingFactors = Dict[str, float]


# =============================================================================
# Sub-scores
# =============================================================================

def relevance_signal(result: SearchResult) -> float:
    return clamp(result.relevance_score or 0.0)


def popularity_signal(interactions: int, saturation: int = 100) -> float:
    return min(interactions / saturation, 1.0)


def recency_signal(created_at: datetime, now: datetime, horizon_days: int = 365) -> float:
    days = (now - created_at).total_seconds() / 86400
    return clamp(1 - days / horizon_days)


def quality_signal(result: SearchResult, row: Optional[Dict[str, Any]]) -> float:
    """
    Completeness heuristic, capped at 1.

    Base 0.5; +0.2 description over 50 chars; +0.1 image. Then per type:
    craftsman +0.2 verified, +0.1 over 5 years' experience; course +0.1
    priced, +0.1 duration; product +0.1 in stock, +0.1 priced. Media has
    no per-type bonus.
    """
    score = 0.5
    if result.description and len(result.description) > 50:
        score += 0.2
    if result.image_url:
        score += 0.1

    row = row or {}
    if result.type.value == "craftsman":
        if row.get("verification_status") == "VERIFIED":
            score += 0.2
        if (to_float(row.get("experience_years")) or 0) > 5:
            score += 0.1
    elif result.type.value == "course":
        if (to_float(row.get("price")) or 0) > 0:
            score += 0.1
        if (to_float(row.get("duration_hours")) or 0) > 0:
            score += 0.1
    elif result.type.value == "product":
        if (to_float(row.get("inventory_quantity")) or 0) > 0:
            score += 0.1
        if (to_float(row.get("price")) or 0) > 0:
            score += 0.1

    return min(score, 1.0)


# =============================================================================
# Engine
# =============================================================================

class RankingEngine:
    """Scores and orders search results by the weighted signal sum."""

    def __init__(
        self,
        behavior_log: Optional[BehaviorLog] = None,
        store: Optional[ContentStore] = None,
        weights: RankingWeights = DEFAULT_RANKING_WEIGHTS,
        popularity_window_days: int = 30,
        timeout: Optional[float] = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.behavior_log = behavior_log or get_behavior_log()
        self.store = store or get_content_store()
        self.weights = weights
        self.popularity_window_days = popularity_window_days
        self.timeout = timeout
        self.clock = clock

    def combine(self, factors: RankingFactors) -> float:
        w = self.weights
        return clamp(
            w.RELEVANCE * factors["relevance"]
            + w.POPULARITY * factors["popularity"]
            + w.QUALITY * factors["quality"]
            + w.RECENCY * factors["recency"]
        )

    def _lookups(
        self, results: Sequence[SearchResult]
    ) -> Dict[Tuple[str, str], Optional[Dict[str, Any]]]:
        """Batched popularity counts and entity rows keyed (signal, entity_type); None = failed."""
        ids_by_type: Dict[str, List[str]] = {}
        for result in results:
            ids_by_type.setdefault(result.type.value, []).append(result.id)

        since = window_start(self.popularity_window_days, self.clock())
        tasks: Dict[Tuple[str, str], Callable[[], Dict[str, Any]]] = {}
        for entity_type in ENTITY_TYPE_ORDER:
            ids = ids_by_type.get(entity_type)
            if not ids:
                continue
            tasks[("popularity", entity_type)] = (
                lambda t=entity_type, i=ids: self.behavior_log.interaction_counts(
                    t, i, POPULARITY_EVENT_TYPES, since
                )
            )
            # Media quality reads only the result itself
            if entity_type != "media":
                tasks[("quality", entity_type)] = (
                    lambda t=entity_type, i=ids: self.store.get_entities(t, i)
                )

        return fan_out(
            tasks,
            timeout=self.timeout,
            default_factory=lambda key: None,
            label="Ranking signal lookup",
        )

    def score(self, results: Sequence[SearchResult]) -> List[RankingFactors]:
        """Signal breakdown per result, in input order."""
        lookups = self._lookups(results)
        now = self.clock()
        failed_quality = {
            entity_type for (signal, entity_type), value in lookups.items()
            if signal == "quality" and value is None
        }

        factors = []
        for result in results:
            entity_type = result.type.value
            counts = lookups.get(("popularity", entity_type)) or {}
            rows = lookups.get(("quality", entity_type)) or {}
            factor = {
                "relevance": relevance_signal(result),
                "popularity": popularity_signal(
                    counts.get(result.id, 0), self.weights.POPULARITY_SATURATION
                ),
                "quality": (
                    0.0 if entity_type in failed_quality
                    else quality_signal(result, rows.get(result.id))
                ),
                "recency": recency_signal(
                    result.created_at, now, self.weights.RECENCY_HORIZON_DAYS
                ),
            }
            factor["combined"] = self.combine(factor)
            factors.append(factor)
        return factors

    def rank(self, results: Sequence[SearchResult]) -> List[SearchResult]:
        """
        Re-score and order by combined score, highest first.

        The combined score replaces ``relevance_score``; the breakdown is
        kept in ``metadata["ranking_factors"]``. Ties keep input order.
        """
        if not results:
            return []
        ranked = []
        for result, factor in zip(results, self.score(results)):
            ranked.append(result.model_copy(update={
                "relevance_score": factor["combined"],
                "metadata": {**result.metadata, "ranking_factors": factor},
            }))
        ranked.sort(key=lambda r: r.relevance_score, reverse=True)
        logger.debug("Ranked results", count=len(ranked), top_score=ranked[0].relevance_score)
        return ranked


# =============================================================================
# Singleton
# =============================================================================

_engine: Optional[RankingEngine] = None
_lock = threading.Lock()


def get_ranking_engine() -> RankingEngine:
    """Get or create the RankingEngine singleton (thread-safe)."""
    global _engine
    if _engine is None:
        with _lock:
            if _engine is None:
                settings = get_settings()
                _engine = RankingEngine(
                    popularity_window_days=settings.popularity_window_days,
                    timeout=settings.store_timeout_seconds,
                )
    return _engine
