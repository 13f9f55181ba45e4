"""
End-to-end demo wiring together pricing, promotion checks, popularity
ranking and operator rewards on synthetic marketplace data.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List

import numpy as np
import pandas as pd

from . import caching, monitoring, popularity, pricing, promotions, rewards
from .data_models import AddOnSelection, Adventure, Promotion

TOUR_TITLES = [
    "Cave Tubing & Jungle Trek",
    "Snorkeling at Hol Chan Marine Reserve",
    "Caracol Maya Ruins Adventure",
    "Blue Hole Diving Experience",
    "Jungle Zip-lining & Waterfall Tour",
    "Manatee Watching & Beach Day",
    "Sunrise Fishing & Island Hopping",
    "Night Jungle Safari",
    "Cultural Village Tour & Chocolate Making",
]


def synthetic_adventures(
    rng: np.random.Generator, now: datetime, num_operators: int = 4
) -> List[Adventure]:
    """
    Create one adventure per known tour title, spread across operators.
    """
    adventures = []
    for i, title in enumerate(TOUR_TITLES):
        booked = rng.random() < 0.8
        last_booked_at = now - timedelta(days=int(rng.integers(0, 45))) if booked else None
        reviews = int(rng.integers(0, 60))
        adventures.append(
            Adventure(
                adventure_id=f"tour_{i:02d}",
                title=title,
                operator_id=f"operator_{i % num_operators}",
                base_price=float(rng.choice([45.0, 75.0, 95.0, 150.0, 225.0])),
                early_bird_discount_percentage=float(rng.choice([0.0, 5.0, 10.0])),
                early_bird_days=14,
                booking_count=int(rng.integers(0, 80)) if booked else 0,
                average_rating=round(float(rng.uniform(3.5, 5.0)), 1) if reviews else 0.0,
                total_reviews=reviews,
                last_booked_at=last_booked_at,
            )
        )
    return adventures


def synthetic_analytics(
    rng: np.random.Generator, adventures: List[Adventure], now: datetime, days: int = 45
) -> pd.DataFrame:
    """
    Daily views / revenue / completed bookings per adventure.
    """
    records = []
    for adventure in adventures:
        for offset in range(days):
            views = int(rng.poisson(12))
            completed = int(rng.binomial(views, 0.05))
            records.append(
                {
                    "listing_id": adventure.adventure_id,
                    "date": (now - timedelta(days=offset)).date().isoformat(),
                    "views": views,
                    "completed_bookings": completed,
                    "revenue": completed * adventure.base_price,
                }
            )
    return pd.DataFrame(records)


def run_demo(seed: int = 123) -> Dict[str, object]:
    rng = np.random.default_rng(seed=seed)
    now = datetime(2025, 6, 1, 12, 0)
    adventures = synthetic_adventures(rng, now)
    analytics = synthetic_analytics(rng, adventures, now)

    # 1) Price one booking with an early-bird date and a promo code
    summer_sale = Promotion(
        code="SUMMER20",
        discount_type="percentage",
        discount_value=20,
        max_discount_amount=50,
        starts_at=now - timedelta(days=10),
        expires_at=now + timedelta(days=60),
    )
    adventure = adventures[0]
    subtotal = adventure.base_price * 4
    promotion = promotions.find_applicable(
        [summer_sale], "summer20", subtotal=subtotal, now=now, adventure_id=adventure.adventure_id
    )
    breakdown = pricing.price_booking(
        adventure,
        participants=4,
        booking_date=now + timedelta(days=21),
        today=now,
        add_ons=[AddOnSelection("Lunch", 15.0, 4)],
        promotion=promotion,
        tax_rate=0.125,
    )

    # 2) Popularity ranking behind the TTL cache
    category_of = popularity.keyword_categorizer()
    aggregates = popularity.build_aggregates(adventures, analytics, now)
    ranking = caching.CachedRanking(
        loader=lambda: popularity.rank_popular(aggregates, category_of),
        fallback=lambda: caching.fallback_by_booking_count(aggregates, category_of),
    )
    winners = ranking.get()

    # 3) Operator rewards
    performances = [rewards.listing_performance(a, now) for a in adventures]
    profiles = rewards.score_operators(performances)

    return {
        "breakdown": breakdown,
        "winners": winners,
        "profiles": profiles,
        "winners_df": monitoring.winners_frame(winners),
        "rewards_df": monitoring.rewards_frame(profiles),
        "tiers": monitoring.tier_distribution(profiles),
    }


def main():
    results = run_demo()
    breakdown = results["breakdown"]
    print(
        f"[main] Booking total: {breakdown.total_amount:.2f} "
        f"(discounts {breakdown.discount_total:.2f}, tax {breakdown.tax_amount:.2f})"
    )
    print("[main] Most popular per category:")
    print(results["winners_df"])
    print("[main] Operator rewards:")
    print(results["rewards_df"][["operator_id", "total_score", "tier", "reward_multiplier"]])
    print("[main] Tier distribution:", results["tiers"])


if __name__ == "__main__":
    main()
