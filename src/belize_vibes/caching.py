"""
Time-to-live cache around ranking runs, with a fallback path.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterable, Optional

from .data_models import PopularityAggregate, PopularityWinner
from .popularity import CategoryOf, conversion_rate

logger = logging.getLogger(__name__)

Ranking = Dict[str, PopularityWinner]


class CachedRanking:
    """
    Serves the last ranking result until it is older than the TTL.

    ``loader`` produces a fresh ranking (typically fetch aggregates, then
    ``rank_popular``). When it fails, the stale cached result is served if
    there is one, otherwise ``fallback`` is used, otherwise an empty result.
    """

    def __init__(
        self,
        loader: Callable[[], Ranking],
        fallback: Optional[Callable[[], Ranking]] = None,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.loader = loader
        self.fallback = fallback
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._data: Optional[Ranking] = None
        self._last_fetch: Optional[float] = None

    def _is_fresh(self, now: float) -> bool:
        if self._data is None or self._last_fetch is None:
            return False
        return now - self._last_fetch < self.ttl_seconds

    def get(self, force_refresh: bool = False) -> Ranking:
        now = self.clock()
        if not force_refresh and self._is_fresh(now):
            return self._data

        try:
            data = self.loader()
        except Exception:
            logger.exception("Ranking loader failed")
            if self._data is not None:
                return self._data
            return self._run_fallback()

        self._data = data
        self._last_fetch = now
        return data

    def _run_fallback(self) -> Ranking:
        if self.fallback is None:
            return {}
        try:
            return self.fallback()
        except Exception:
            logger.exception("Ranking fallback failed")
            return {}

    def refresh(self) -> Ranking:
        return self.get(force_refresh=True)

    def invalidate(self) -> None:
        self._data = None
        self._last_fetch = None

    def status(self) -> Dict[str, object]:
        now = self.clock()
        age = None
        if self._last_fetch is not None:
            age = now - self._last_fetch
        return {
            "has_data": self._data is not None,
            "age": age,
            "ttl": self.ttl_seconds,
            "is_stale": not self._is_fresh(now),
        }


def fallback_by_booking_count(
    aggregates: Iterable[PopularityAggregate],
    category_of: CategoryOf,
    skip_categories: Iterable[str] = ("other",),
) -> Ranking:
    """
    Degraded ranking: the most-booked listing per category, scored by its
    raw booking count. Ties go to the smaller listing id.

    Listings landing in ``skip_categories`` (by default the catch-all
    ``"other"`` bucket) are left out, so only named categories get a winner.
    """

    skipped = set(skip_categories)
    best: Dict[str, PopularityAggregate] = {}
    for aggregate in sorted(aggregates, key=lambda a: (-a.booking_count, a.listing_id)):
        category = category_of(aggregate)
        if category in skipped:
            continue
        best.setdefault(category, aggregate)
    return {
        category: PopularityWinner(
            category=category,
            listing_id=aggregate.listing_id,
            popularity_score=float(aggregate.booking_count),
            booking_count=aggregate.booking_count,
            visits_count=aggregate.views,
            booking_conversion_rate=conversion_rate(aggregate),
            revenue_generated=aggregate.revenue,
        )
        for category, aggregate in best.items()
    }
