"""
Tests for multi-signal ranking.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from core.errors import StoreUnavailableError
from search.models import EntityType, SearchResult
from search.ranking import (
    RankingEngine,
    popularity_signal,
    quality_signal,
    recency_signal,
    relevance_signal,
)

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _result(id, type=EntityType.COURSE, score=None, age_days=0, **kwargs):
    return SearchResult(
        id=id,
        type=type,
        title=id,
        category=type.value,
        url=f"/{id}",
        relevance_score=score,
        created_at=NOW - timedelta(days=age_days),
        **kwargs,
    )


def _engine(counts=None, rows=None, counts_error=None, rows_error=None):
    behavior_log = MagicMock()
    store = MagicMock()
    if counts_error:
        behavior_log.interaction_counts.side_effect = counts_error
    else:
        behavior_log.interaction_counts.side_effect = (
            lambda entity_type, ids, event_types, since: {
                i: n for i, n in (counts or {}).items() if i in ids
            }
        )
    if rows_error:
        store.get_entities.side_effect = rows_error
    else:
        store.get_entities.side_effect = (
            lambda entity_type, ids: {i: r for i, r in (rows or {}).items() if i in ids}
        )
    return RankingEngine(behavior_log=behavior_log, store=store, clock=lambda: NOW)


class TestSignals:

    def test_relevance(self):
        assert relevance_signal(_result("a")) == 0.0
        assert relevance_signal(_result("a", score=0.7)) == 0.7

    def test_popularity_saturates(self):
        assert popularity_signal(0) == 0.0
        assert popularity_signal(50) == 0.5
        assert popularity_signal(250) == 1.0

    def test_recency_decays_linearly(self):
        assert recency_signal(NOW, NOW) == 1.0
        assert recency_signal(NOW - timedelta(days=73), NOW) == pytest.approx(0.8)
        assert recency_signal(NOW - timedelta(days=400), NOW) == 0.0

    def test_recency_future_dates_clamped(self):
        assert recency_signal(NOW + timedelta(days=10), NOW) == 1.0

    def test_quality_craftsman(self):
        result = _result("c", EntityType.CRAFTSMAN, description="x" * 60, image_url="i")
        row = {"verification_status": "VERIFIED", "experience_years": 12}
        assert quality_signal(result, row) == 1.0
        assert quality_signal(result, {"experience_years": 3}) == pytest.approx(0.8)

    def test_quality_course_priced_with_duration(self):
        course = _result("c")
        assert quality_signal(course, {"price": 300, "duration_hours": 2}) == pytest.approx(0.7)
        assert quality_signal(course, {"price": 0, "duration_hours": 2, "max_participants": 8}) == pytest.approx(0.6)

    def test_quality_product_in_stock_and_priced(self):
        product = _result("p", EntityType.PRODUCT)
        assert quality_signal(product, {"inventory_quantity": 3, "price": 120}) == pytest.approx(0.7)
        assert quality_signal(product, {"inventory_quantity": 0, "is_customizable": True}) == 0.5

    def test_quality_media_has_no_type_bonus(self):
        image = _result("m", EntityType.MEDIA, metadata={"file_type": "image"})
        assert quality_signal(image, None) == 0.5

    def test_quality_without_row(self):
        assert quality_signal(_result("c"), None) == 0.5


class TestRankingEngine:

    def test_combined_score(self):
        engine = _engine(
            counts={"co-1": 50},
            rows={"co-1": {"price": 300, "duration_hours": 2}},
        )
        [ranked] = engine.rank([_result("co-1", score=0.5)])

        assert ranked.relevance_score == pytest.approx(0.4 * 0.5 + 0.3 * 0.5 + 0.2 * 0.7 + 0.1 * 1.0)
        factors = ranked.metadata["ranking_factors"]
        assert factors["popularity"] == 0.5
        assert factors["quality"] == pytest.approx(0.7)
        assert factors["combined"] == ranked.relevance_score

    def test_orders_by_combined_score(self):
        engine = _engine(counts={"b": 100})
        ranked = engine.rank([_result("a"), _result("b")])
        assert [r.id for r in ranked] == ["b", "a"]

    def test_ties_keep_input_order(self):
        engine = _engine()
        ranked = engine.rank([_result("x"), _result("y"), _result("z")])
        assert [r.id for r in ranked] == ["x", "y", "z"]

    def test_lookups_are_batched_per_type(self):
        engine = _engine()
        engine.rank([
            _result("c1", EntityType.CRAFTSMAN),
            _result("c2", EntityType.CRAFTSMAN),
            _result("co"),
            _result("md", EntityType.MEDIA),
        ])
        assert engine.behavior_log.interaction_counts.call_count == 3
        # Media quality is computed from the result alone
        assert sorted(c.args[0] for c in engine.store.get_entities.call_args_list) == [
            "course", "craftsman",
        ]

    def test_failed_popularity_scores_zero(self):
        engine = _engine(counts_error=StoreUnavailableError("down"))
        [ranked] = engine.rank([_result("a", score=1.0)])
        assert ranked.metadata["ranking_factors"]["popularity"] == 0.0
        assert ranked.relevance_score == pytest.approx(0.4 + 0.2 * 0.5 + 0.1)

    def test_failed_quality_scores_zero(self):
        engine = _engine(rows_error=StoreUnavailableError("down"))
        [ranked] = engine.rank([_result("a")])
        assert ranked.metadata["ranking_factors"]["quality"] == 0.0

    def test_input_not_mutated(self):
        original = _result("a", score=0.3)
        _engine().rank([original])
        assert original.relevance_score == 0.3
        assert "ranking_factors" not in original.metadata

    def test_empty(self):
        engine = _engine()
        assert engine.rank([]) == []
        engine.behavior_log.interaction_counts.assert_not_called()

    def test_scores_bounded(self):
        engine = _engine(counts={"a": 10_000}, rows={"a": {"duration_hours": 1, "max_participants": 1}})
        [ranked] = engine.rank([_result("a", score=5.0, age_days=-30, description="x" * 80, image_url="i")])
        assert 0.0 <= ranked.relevance_score <= 1.0
