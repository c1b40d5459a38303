"""
Tests for search analytics tracking and reporting.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from fakes import FakeSupabase, event_row
from recs.behavior import BehaviorLog
from search.analytics import SearchAnalytics
from search.models import EntityType, SearchQuery

START = datetime(2026, 3, 1, tzinfo=timezone.utc)
END = datetime(2026, 3, 3, tzinfo=timezone.utc)


def _search(user_id, query, created_at, **metadata):
    return event_row(user_id, "search", "media", "search", created_at=created_at, query=query, **metadata)


@pytest.fixture
def db():
    return FakeSupabase({"user_behavior_events": [
        _search("u1", "竹編", "2026-03-01T09:00:00+00:00", category="course", result_count=4),
        _search("u2", "竹編", "2026-03-01T12:00:00+00:00", category=None, result_count=2),
        _search("u1", "吹糖", "2026-03-02T08:00:00+00:00", category="course"),
        _search("u1", "打鐵", "2026-03-03T00:00:00+00:00", result_count=9),
        _search("u1", "製香", "2026-02-28T23:59:59+00:00", result_count=9),
        event_row("u1", "click", "course", "co-1", created_at="2026-03-01T10:00:00+00:00", source="search"),
        event_row("u1", "click", "course", "co-2", created_at="2026-03-01T11:00:00+00:00"),
    ]})


@pytest.fixture
def analytics(db):
    return SearchAnalytics(behavior_log=BehaviorLog(db))


class TestTracking:

    def test_track_search_records_filters_and_count(self, analytics, db):
        ok = analytics.track_search(
            SearchQuery(query="竹編", category="course", craft_type="竹編", user_id="u9"),
            result_count=7,
        )

        assert ok is True
        row = db.rows("user_behavior_events")[-1]
        assert row["event_type"] == "search"
        assert row["entity_type"] == "media"
        assert row["entity_id"] == "search"
        assert row["metadata"] == {
            "query": "竹編", "category": "course", "craftType": "竹編", "result_count": 7,
        }

    @pytest.mark.parametrize("query", [
        SearchQuery(query="竹編"),
        SearchQuery(user_id="u1"),
        SearchQuery(query="", user_id="u1"),
    ])
    def test_track_search_skipped(self, analytics, db, query):
        before = len(db.rows("user_behavior_events"))
        assert analytics.track_search(query) is False
        assert len(db.rows("user_behavior_events")) == before

    def test_track_click(self, analytics, db):
        assert analytics.track_click("u1", "pr-1", EntityType.PRODUCT, "竹", position=2) is True

        row = db.rows("user_behavior_events")[-1]
        assert (row["event_type"], row["entity_type"], row["entity_id"]) == ("click", "product", "pr-1")
        assert row["metadata"] == {"source": "search", "search_query": "竹", "position": 2}

    def test_tracking_failure_returns_false(self):
        analytics = SearchAnalytics(BehaviorLog(FakeSupabase(failing={"user_behavior_events"})))
        assert analytics.track_search(SearchQuery(query="竹", user_id="u1")) is False


class TestReport:

    def test_window_is_half_open(self, analytics):
        report = analytics.report(START, END)
        assert report.total_searches == 3

    def test_click_through_rate(self, analytics):
        report = analytics.report(START, END)
        # only clicks sourced from search count
        assert report.click_through_rate == pytest.approx(1 / 3)

    def test_popular_queries_and_categories(self, analytics):
        report = analytics.report(START, END)

        assert [(q.query, q.count) for q in report.popular_queries] == [("竹編", 2), ("吹糖", 1)]
        assert [(c.category, c.count) for c in report.popular_categories] == [("course", 2)]

    def test_daily_trends_oldest_first(self, analytics):
        report = analytics.report(START, END)
        assert [(d.date, d.count) for d in report.search_trends] == [
            ("2026-03-01", 2),
            ("2026-03-02", 1),
        ]

    def test_average_results_over_recorded_counts(self, analytics):
        assert analytics.report(START, END).avg_results_per_search == pytest.approx(3.0)

    def test_empty_window(self, analytics):
        report = analytics.report(datetime(2025, 1, 1, tzinfo=timezone.utc), datetime(2025, 1, 2, tzinfo=timezone.utc))

        assert report.total_searches == 0
        assert report.click_through_rate == 0.0
        assert report.avg_results_per_search == 0.0
        assert report.popular_queries == []

    def test_failed_count_degrades_alone(self):
        log = MagicMock()
        log.count_events.side_effect = RuntimeError("down")
        log.search_events.return_value = [
            {"metadata": {"query": "竹編", "result_count": 5}, "created_at": "2026-03-01T09:00:00+00:00"},
        ]
        report = SearchAnalytics(behavior_log=log).report(START, END)

        assert report.total_searches == 0
        assert report.click_through_rate == 0.0
        assert [q.query for q in report.popular_queries] == ["竹編"]
        assert report.avg_results_per_search == 5.0

    def test_failed_scan_degrades_alone(self):
        log = MagicMock()
        log.count_events.return_value = 4
        log.search_events.side_effect = RuntimeError("down")
        report = SearchAnalytics(behavior_log=log).report(START, END)

        assert report.total_searches == 4
        assert report.click_through_rate == 1.0
        assert report.popular_queries == []
        assert report.search_trends == []
