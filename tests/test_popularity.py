import math
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from belize_vibes.data_models import Adventure, PopularityAggregate
from belize_vibes.errors import InvalidInput
from belize_vibes.popularity import (
    PopularityWeights,
    build_aggregates,
    days_since,
    keyword_categorizer,
    popularity_score,
    rank_popular,
    recency_boost,
    winner_ids,
)


def same_category(_aggregate):
    return "adventure"


def by_title(aggregate):
    return aggregate.title


class TestPopularityScore:
    """Weighted popularity formula"""

    def test_raw_bookings_only(self):
        a = PopularityAggregate("a", booking_count=10)
        assert popularity_score(a) == pytest.approx(4.0)

    def test_full_formula(self):
        b = PopularityAggregate(
            "b",
            booking_count=5,
            views=100,
            average_rating=5,
            total_reviews=20,
            days_since_last_booking=1,
            revenue=2000,
        )
        expected = (
            5 * 0.4
            + (100 * 0.1) * 0.2
            + ((29 / 30) * 100) * 0.15
            + (1.0 * 100) * 0.15
            + (2000 * 0.01) * 0.1
        )
        assert popularity_score(b) == pytest.approx(expected)
        assert popularity_score(b) == pytest.approx(35.5)

    def test_unreviewed_listing_gets_no_rating_credit(self):
        rated = PopularityAggregate("a", average_rating=5, total_reviews=0)
        assert popularity_score(rated) == 0

    def test_recency_decays_to_zero(self):
        assert recency_boost(0) == 1.0
        assert recency_boost(15) == 0.5
        assert recency_boost(30) == 0.0
        assert recency_boost(45) == 0.0
        assert recency_boost(math.inf) == 0.0

    @pytest.mark.parametrize(
        "field", ["booking_count", "views", "revenue", "total_reviews", "days_since_last_booking"]
    )
    def test_negative_input(self, field):
        aggregate = PopularityAggregate("a", **{field: -1})
        with pytest.raises(InvalidInput):
            popularity_score(aggregate)


class TestRankPopular:
    """Category winner selection"""

    def test_empty(self):
        assert rank_popular([], same_category) == {}

    def test_single_listing_wins_its_category(self):
        only = PopularityAggregate("lonely")

        result = rank_popular([only], same_category)

        assert list(result) == ["adventure"]
        assert result["adventure"].listing_id == "lonely"
        assert result["adventure"].popularity_score == 0

    def test_recency_and_rating_overtake_raw_bookings(self):
        a = PopularityAggregate("a", booking_count=10)
        b = PopularityAggregate(
            "b",
            booking_count=5,
            views=100,
            average_rating=5,
            total_reviews=20,
            days_since_last_booking=1,
        )

        winner = rank_popular([a, b], same_category)["adventure"]

        assert popularity_score(a) == pytest.approx(4.0)
        assert winner.listing_id == "b"
        assert winner.popularity_score == pytest.approx(33.5)

    def test_equal_scores_smaller_id_wins(self):
        first = PopularityAggregate("tour_b", booking_count=3, views=40)
        second = PopularityAggregate("tour_a", booking_count=3, views=40)

        result = rank_popular([first, second], same_category)

        assert result["adventure"].listing_id == "tour_a"

    def test_equal_scores_more_bookings_wins(self):
        weights = PopularityWeights(
            booking_count=1.0,
            views=1.0,
            views_scale=1.0,
            recent_activity=0.0,
            rating_quality=0.0,
            revenue_impact=0.0,
        )
        by_views = PopularityAggregate("a", booking_count=0, views=10)
        by_bookings = PopularityAggregate("z", booking_count=10)

        result = rank_popular([by_views, by_bookings], same_category, weights)

        assert popularity_score(by_views, weights) == popularity_score(by_bookings, weights)
        assert result["adventure"].listing_id == "z"

    def test_grouped_by_injected_category_and_ordered_by_score(self):
        listings = [
            PopularityAggregate("m1", booking_count=2, title="marine"),
            PopularityAggregate("m2", booking_count=8, title="marine"),
            PopularityAggregate("c1", booking_count=50, title="cultural"),
            PopularityAggregate("w1", booking_count=1, title="wildlife"),
        ]

        result = rank_popular(listings, by_title)

        assert list(result) == ["cultural", "marine", "wildlife"]
        assert winner_ids(result) == ["c1", "m2", "w1"]

    def test_winner_metrics(self):
        listing = PopularityAggregate("a", booking_count=4, views=200, completed_bookings=5, revenue=750)

        winner = rank_popular([listing], same_category)["adventure"]

        assert winner.visits_count == 200
        assert winner.booking_conversion_rate == pytest.approx(2.5)
        assert winner.revenue_generated == 750
        assert winner.booking_count == 4

    def test_invalid_aggregate_fails_whole_run(self):
        listings = [PopularityAggregate("ok", booking_count=3), PopularityAggregate("bad", views=-1)]
        with pytest.raises(InvalidInput):
            rank_popular(listings, same_category)

    def test_deterministic(self):
        listings = [PopularityAggregate(f"t{i}", booking_count=i % 3, views=i * 7.5) for i in range(20)]
        assert rank_popular(listings, same_category) == rank_popular(list(reversed(listings)), same_category)


class TestKeywordCategorizer:
    def test_default_rules(self):
        category_of = keyword_categorizer()

        assert category_of(Adventure("1", 10.0, title="Cave Tubing & Jungle Trek")) == "adventure"
        assert category_of(Adventure("2", 10.0, title="Blue Hole Diving Experience")) == "diving"
        assert category_of(Adventure("3", 10.0, title="Caracol Maya Ruins")) == "cultural"
        assert category_of(Adventure("4", 10.0, title="Sunset Cruise")) == "other"

    def test_first_rule_wins(self):
        category_of = keyword_categorizer([("first", ["tour"]), ("second", ["tour"])], default="misc")

        assert category_of(PopularityAggregate("a", title="City TOUR")) == "first"
        assert category_of(PopularityAggregate("b")) == "misc"


class TestBuildAggregates:
    """Trailing-window aggregation of analytics rows"""

    @pytest.fixture
    def now(self):
        return datetime(2025, 6, 1, 12, 0)

    @pytest.fixture
    def listings(self):
        return [
            Adventure(
                "tour_a",
                95.0,
                title="Night Jungle Safari",
                booking_count=12,
                average_rating=4.5,
                total_reviews=8,
                last_booked_at=datetime(2025, 5, 30, 12, 0),
            ),
            Adventure("tour_b", 45.0, title="Manatee Watching"),
        ]

    def test_window_and_sums(self, now, listings):
        analytics = pd.DataFrame(
            [
                {"listing_id": "tour_a", "date": "2025-05-31", "views": 10, "revenue": "100.50", "completed_bookings": 1},
                {"listing_id": "tour_a", "date": "2025-05-20", "views": 5, "revenue": 0, "completed_bookings": 0},
                {"listing_id": "tour_a", "date": "2025-04-01", "views": 1000, "revenue": 9999, "completed_bookings": 50},
            ]
        )

        a, b = build_aggregates(listings, analytics, now)

        assert a.listing_id == "tour_a"
        assert a.views == 15
        assert a.revenue == pytest.approx(100.5)
        assert a.completed_bookings == 1
        assert a.booking_count == 12
        assert a.days_since_last_booking == 2
        assert a.title == "Night Jungle Safari"
        assert b.views == 0
        assert b.revenue == 0
        assert math.isinf(b.days_since_last_booking)

    def test_no_analytics(self, now, listings):
        aggregates = build_aggregates(listings, pd.DataFrame(columns=["listing_id", "date"]), now)

        assert [a.views for a in aggregates] == [0, 0]

    def test_days_since(self, now):
        assert days_since(None, now) == math.inf
        assert days_since(datetime(2025, 5, 31, 13, 0), now) == 0
        assert days_since(datetime(2025, 5, 1, 12, 0), now) == 31

    def test_booking_after_now_counts_as_today(self, now):
        assert days_since(now + timedelta(days=2), now) == 0

    def test_mixed_timezones(self, now):
        aware_now = now.replace(tzinfo=timezone.utc)
        plus_two = timezone(timedelta(hours=2))

        assert days_since(datetime(2025, 5, 30), aware_now) == 2
        assert days_since(datetime(2025, 5, 30, 12, 0, tzinfo=plus_two), now) == 2

    def test_future_booking_caps_recency_term(self, now, listings):
        listings[0].last_booked_at = now + timedelta(days=2)

        a, _ = build_aggregates(listings, pd.DataFrame(columns=["listing_id", "date"]), now)

        assert a.days_since_last_booking == 0
        recency_only = PopularityAggregate("x", days_since_last_booking=a.days_since_last_booking)
        assert popularity_score(recency_only) == pytest.approx(15.0)

    def test_aware_now_with_naive_bookings(self, now, listings):
        analytics = pd.DataFrame(
            [{"listing_id": "tour_a", "date": "2025-05-31", "views": 4}]
        )

        a, b = build_aggregates(listings, analytics, now.replace(tzinfo=timezone.utc))

        assert a.days_since_last_booking == 2
        assert a.views == 4
        assert math.isinf(b.days_since_last_booking)
