"""
Tests for the enhanced search pipeline.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from recs.models import RecommendationResult
from search.content_search import CandidateSet
from search.enhanced_search import EnhancedSearchService, recommendation_to_result
from search.models import EnhancedSearchRequest, EntityType, Facet, SearchFacets, SearchResult


def _result(id, score=0.5):
    return SearchResult(
        id=id,
        type=EntityType.COURSE,
        title=id,
        category="course",
        url=f"/courses/{id}",
        relevance_score=score,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def candidates():
    return CandidateSet(
        results=[_result(f"c{i}") for i in range(5)],
        facets=SearchFacets(categories=[Facet(name="course", count=5)]),
    )


@pytest.fixture
def deps(candidates):
    content_search = MagicMock()
    content_search.collect.return_value = candidates
    ranking = MagicMock()
    ranking.rank.side_effect = lambda results: list(reversed(results))
    personalization = MagicMock()
    personalization.personalize_results.side_effect = lambda results, user_id: results
    recommender = MagicMock()
    recommender.recommend.return_value = []
    analytics = MagicMock()
    return {
        "content_search": content_search,
        "ranking": ranking,
        "personalization": personalization,
        "recommender": recommender,
        "analytics": analytics,
    }


@pytest.fixture
def service(deps):
    return EnhancedSearchService(**deps)


class TestEnhancedSearch:

    def test_relevance_personalized_ranked_then_paginated(self, service, deps):
        response = service.search(EnhancedSearchRequest(query="竹", user_id="u1", limit=2, offset=1))

        deps["personalization"].personalize_results.assert_called_once()
        deps["ranking"].rank.assert_called_once()
        # ranking sees the full candidate set
        assert len(deps["ranking"].rank.call_args.args[0]) == 5
        assert [r.id for r in response.results] == ["c3", "c2"]
        assert response.total == 5
        assert response.personalized is True
        assert response.facets.categories[0].count == 5

    def test_anonymous_search_is_ranked_not_personalized(self, service, deps):
        response = service.search(EnhancedSearchRequest(query="竹"))

        deps["personalization"].personalize_results.assert_not_called()
        deps["ranking"].rank.assert_called_once()
        assert response.personalized is False

    def test_personalize_flag_off(self, service, deps):
        service.search(EnhancedSearchRequest(query="竹", user_id="u1", personalize=False))
        deps["personalization"].personalize_results.assert_not_called()

    def test_profile_failure_not_flagged(self, service, deps):
        deps["personalization"].personalize_results.side_effect = None
        deps["personalization"].personalize_results.return_value = None
        response = service.search(EnhancedSearchRequest(query="竹", user_id="u1"))
        assert response.personalized is False

    @pytest.mark.parametrize("sort_by", ["date", "popularity"])
    def test_explicit_sort_untouched(self, service, deps, sort_by):
        response = service.search(EnhancedSearchRequest(query="竹", user_id="u1", sort_by=sort_by))

        deps["personalization"].personalize_results.assert_not_called()
        deps["ranking"].rank.assert_not_called()
        assert [r.id for r in response.results] == ["c0", "c1", "c2", "c3", "c4"]

    def test_tracks_with_result_count(self, service, deps):
        service.search(EnhancedSearchRequest(query="竹", user_id="u1", limit=2))

        query = deps["analytics"].track_search.call_args.args[0]
        assert query.query == "竹"
        assert deps["analytics"].track_search.call_args.kwargs["result_count"] == 5

    def test_tracking_disabled(self, deps):
        service = EnhancedSearchService(tracking_enabled=False, **deps)
        service.search(EnhancedSearchRequest(query="竹", user_id="u1"))
        deps["analytics"].track_search.assert_not_called()

    def test_track_search_flag_off(self, service, deps):
        service.search(EnhancedSearchRequest(query="竹", user_id="u1", track_search=False))
        deps["analytics"].track_search.assert_not_called()

    def test_recommendations_attached(self, service, deps):
        deps["recommender"].recommend.return_value = [RecommendationResult(
            id="cm-2", type=EntityType.CRAFTSMAN, title="李師傅", url="/craftsmen/cm-2",
            score=0.8, reason="熱門師傅",
            metadata={"craft_type": "竹編", "created_at": "2026-02-01T00:00:00+00:00"},
        )]
        response = service.search(EnhancedSearchRequest(
            query="竹", user_id="u1", include_recommendations=True,
        ))

        deps["recommender"].recommend.assert_called_once_with(user_id="u1", limit=5, exclude_viewed=True)
        [rec] = response.recommendations
        assert rec.id == "cm-2"
        assert rec.metadata["recommendation_reason"] == "熱門師傅"

    def test_no_recommendations_without_user(self, service, deps):
        response = service.search(EnhancedSearchRequest(query="竹", include_recommendations=True))
        deps["recommender"].recommend.assert_not_called()
        assert response.recommendations == []

    def test_failure_returns_empty_response(self, service, deps):
        deps["content_search"].collect.side_effect = RuntimeError("boom")
        response = service.search(EnhancedSearchRequest(query="竹", user_id="u1"))

        assert response.results == []
        assert response.total == 0
        assert response.query.query == "竹"


class TestRecommendationToResult:

    def test_fields(self):
        result = recommendation_to_result(RecommendationResult(
            id="co-2", type=EntityType.COURSE, title="竹編燈籠", url="/courses/co-2",
            score=0.9, reason="推薦竹編課程",
            metadata={"craft_type": "竹編", "created_at": "2026-02-01T00:00:00+00:00"},
        ))

        assert result.category == "course"
        assert result.craft_type == "竹編"
        assert result.relevance_score == 0.9
        assert result.created_at == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_missing_created_at(self):
        result = recommendation_to_result(RecommendationResult(
            id="x", type=EntityType.MEDIA, title="x", url="/media/x", score=0.6, reason="r",
        ))
        assert result.created_at.tzinfo is not None
