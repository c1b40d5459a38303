"""
Diversity filter for recommendation sections.

Walks candidates best-first with running counts per entity type and per craft
type:

    adjusted = base - type_count * factor * 0.1 - craft_type_count * factor * 0.05

Candidates at or below the 0.3 threshold are dropped and do not count.
Survivors are re-sorted by adjusted score.

The pre-diversity score is kept in ``metadata["base_score"]`` and every pass
starts from it in a fixed (base score, entity type, id) order, so filtering an
already filtered list changes nothing.
"""

from collections import Counter
from typing import Iterable, List

from config.constants import (
    DEFAULT_RECOMMENDATION_SCORES,
    ENTITY_TYPE_ORDER,
    RecommendationScores,
)
from recs.models import RecommendationResult


def base_score(rec: RecommendationResult) -> float:
    return float(rec.metadata.get("base_score", rec.score))


def _walk_order(rec: RecommendationResult):
    return (-base_score(rec), ENTITY_TYPE_ORDER.index(rec.type.value), rec.id)


def apply_diversity(
    recommendations: Iterable[RecommendationResult],
    diversity_factor: float,
    scores: RecommendationScores = DEFAULT_RECOMMENDATION_SCORES,
) -> List[RecommendationResult]:
    """Penalize repeated types and craft types; ``diversity_factor == 0`` is identity."""
    recommendations = list(recommendations)
    if diversity_factor == 0:
        return recommendations

    type_counts: Counter = Counter()
    craft_type_counts: Counter = Counter()
    kept = []
    for rec in sorted(recommendations, key=_walk_order):
        base = base_score(rec)
        craft_type = rec.craft_type or ""
        adjusted = (
            base
            - type_counts[rec.type.value] * diversity_factor * scores.DIVERSITY_TYPE_STEP
            - craft_type_counts[craft_type] * diversity_factor * scores.DIVERSITY_CRAFT_TYPE_STEP
        )
        if adjusted <= scores.DIVERSITY_THRESHOLD:
            continue
        kept.append(rec.model_copy(update={
            "score": adjusted,
            "metadata": {**rec.metadata, "base_score": base},
        }))
        type_counts[rec.type.value] += 1
        craft_type_counts[craft_type] += 1

    kept.sort(key=lambda r: r.score, reverse=True)
    return kept
