"""
Popularity scoring and "most popular per category" selection.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .data_models import Adventure, PopularityAggregate, PopularityWinner
from .errors import InvalidInput

logger = logging.getLogger(__name__)

CategoryOf = Callable[[PopularityAggregate], str]

ACTIVITY_COLUMNS = ["views", "revenue", "completed_bookings"]


@dataclass(frozen=True)
class PopularityWeights:
    """
    Weights of the popularity formula. The five term weights sum to 1.0;
    the scales normalise raw views and revenue before weighting.
    """

    booking_count: float = 0.4
    views: float = 0.2
    recent_activity: float = 0.15
    rating_quality: float = 0.15
    revenue_impact: float = 0.1
    views_scale: float = 0.1
    revenue_scale: float = 0.01
    recency_window_days: float = 30.0


DEFAULT_WEIGHTS = PopularityWeights()

DEFAULT_CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("adventure", ("cave", "zip", "jungle")),
    ("marine", ("snorkel", "fishing", "island")),
    ("cultural", ("maya", "ruins", "cultural", "village")),
    ("diving", ("blue hole", "diving")),
    ("wildlife", ("manatee", "safari", "wildlife")),
)


def _naive(ts: pd.Timestamp) -> pd.Timestamp:
    # aware timestamps become naive UTC, naive ones are taken as UTC
    if ts.tzinfo is not None:
        return ts.tz_convert(None)
    return ts


def days_since(last_booked_at: Optional[datetime], now: datetime) -> float:
    """
    Whole days elapsed since the last booking, ``math.inf`` if never booked.

    Timezone-aware and naive values may be mixed. A booking stamped after
    ``now`` counts as booked today.
    """

    if last_booked_at is None:
        return math.inf
    elapsed = _naive(pd.Timestamp(now)) - _naive(pd.Timestamp(last_booked_at))
    return float(max(0, math.floor(elapsed.total_seconds() / 86400)))


def recency_boost(days: float, window: float = 30.0) -> float:
    # linear decay from 1.0 (booked today) to 0.0 at the window edge
    return max(0.0, window - days) / window


def rating_score(average_rating: float, total_reviews: int) -> float:
    if total_reviews <= 0:
        return 0.0
    return average_rating / 5


def _validate(aggregate: PopularityAggregate) -> None:
    for name in (
        "booking_count",
        "views",
        "revenue",
        "total_reviews",
        "days_since_last_booking",
    ):
        if getattr(aggregate, name) < 0:
            raise InvalidInput(
                f"Listing {aggregate.listing_id}: {name} cannot be negative"
            )


def popularity_score(
    aggregate: PopularityAggregate, weights: PopularityWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Weighted popularity score of one listing.
    """

    _validate(aggregate)
    recency = recency_boost(aggregate.days_since_last_booking, weights.recency_window_days)
    rating = rating_score(aggregate.average_rating, aggregate.total_reviews)
    return (
        aggregate.booking_count * weights.booking_count
        + (aggregate.views * weights.views_scale) * weights.views
        + (recency * 100) * weights.recent_activity
        + (rating * 100) * weights.rating_quality
        + (aggregate.revenue * weights.revenue_scale) * weights.revenue_impact
    )


def conversion_rate(aggregate: PopularityAggregate) -> float:
    if aggregate.views <= 0:
        return 0.0
    return aggregate.completed_bookings / aggregate.views * 100


def rank_popular(
    aggregates: Iterable[PopularityAggregate],
    category_of: CategoryOf,
    weights: PopularityWeights = DEFAULT_WEIGHTS,
) -> Dict[str, PopularityWinner]:
    """
    Pick the most popular listing of every category.

    Within a category the highest score wins; ties go to the higher
    booking count, then to the lexicographically smaller listing id.
    The returned mapping is ordered by winning score, highest first.
    """

    aggregates = list(aggregates)
    for aggregate in aggregates:
        _validate(aggregate)

    by_category: Dict[str, List[Tuple[float, PopularityAggregate]]] = {}
    for aggregate in aggregates:
        score = popularity_score(aggregate, weights)
        by_category.setdefault(category_of(aggregate), []).append((score, aggregate))

    winners: List[PopularityWinner] = []
    for category, scored in by_category.items():
        score, best = min(
            scored,
            key=lambda item: (-item[0], -item[1].booking_count, item[1].listing_id),
        )
        winners.append(
            PopularityWinner(
                category=category,
                listing_id=best.listing_id,
                popularity_score=score,
                booking_count=best.booking_count,
                visits_count=best.views,
                booking_conversion_rate=conversion_rate(best),
                revenue_generated=best.revenue,
            )
        )

    winners.sort(key=lambda w: (-w.popularity_score, w.category))
    logger.debug(
        "Ranked %d listings into %d categories", len(aggregates), len(winners)
    )
    return {winner.category: winner for winner in winners}


def winner_ids(result: Dict[str, PopularityWinner]) -> List[str]:
    return [winner.listing_id for winner in result.values()]


def keyword_categorizer(
    rules: Sequence[Tuple[str, Sequence[str]]] = DEFAULT_CATEGORY_KEYWORDS,
    default: str = "other",
) -> Callable[[object], str]:
    """
    Build a ``category_of`` function matching keywords against a title.

    Rules are tried in order; the first category with a keyword contained
    in the lower-cased title wins.
    """

    lowered = [(category, [k.lower() for k in keywords]) for category, keywords in rules]

    def category_of(listing) -> str:
        title = (getattr(listing, "title", "") or "").lower()
        for category, keywords in lowered:
            if any(keyword in title for keyword in keywords):
                return category
        return default

    return category_of


def build_aggregates(
    listings: Iterable[Adventure],
    analytics: pd.DataFrame,
    now: datetime,
    window_days: int = 30,
) -> List[PopularityAggregate]:
    """
    Combine listing metadata with daily analytics rows into ranking inputs.

    Parameters
    ----------
    listings:
        Active adventures with their lifetime booking stats.
    analytics:
        DataFrame with columns ['listing_id', 'date'] plus any of
        ['views', 'revenue', 'completed_bookings']. Only rows dated within
        the trailing ``window_days`` count.
    now:
        Reference time for the window and for recency.
    """

    df = analytics.copy()
    for col in ACTIVITY_COLUMNS:
        if col not in df.columns:
            df[col] = 0
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)

    if df.empty:
        totals = pd.DataFrame(columns=ACTIVITY_COLUMNS)
    else:
        dates = pd.to_datetime(df["date"])
        if dates.dt.tz is not None:
            dates = dates.dt.tz_convert(None)
        cutoff = (_naive(pd.Timestamp(now)) - pd.Timedelta(days=window_days)).normalize()
        totals = df[dates >= cutoff].groupby("listing_id")[ACTIVITY_COLUMNS].sum()

    aggregates = []
    for listing in listings:
        if listing.adventure_id in totals.index:
            row = totals.loc[listing.adventure_id]
            views = float(row["views"])
            revenue = float(row["revenue"])
            completed = int(row["completed_bookings"])
        else:
            views, revenue, completed = 0.0, 0.0, 0
        aggregates.append(
            PopularityAggregate(
                listing_id=listing.adventure_id,
                booking_count=listing.booking_count,
                views=views,
                days_since_last_booking=days_since(listing.last_booked_at, now),
                average_rating=listing.average_rating,
                total_reviews=listing.total_reviews,
                revenue=revenue,
                completed_bookings=completed,
                title=listing.title,
            )
        )
    return aggregates
