"""
Reporting helpers turning ranking and reward runs into DataFrames.
"""

from __future__ import annotations

from typing import Dict

import pandas as pd

from .data_models import OperatorRewardProfile, PopularityWinner

WINNER_COLUMNS = [
    "category",
    "listing_id",
    "popularity_score",
    "booking_count",
    "visits_count",
    "booking_conversion_rate",
    "revenue_generated",
]

REWARD_COLUMNS = [
    "operator_id",
    "total_score",
    "tours_count",
    "total_bookings",
    "avg_rating",
    "total_revenue",
    "tier",
    "tier_badge",
    "reward_multiplier",
    "visibility_boost",
    "achievements",
]


def winners_frame(result: Dict[str, PopularityWinner]) -> pd.DataFrame:
    """
    One row per category winner, scores rounded to cents.
    """

    if not result:
        return pd.DataFrame(columns=WINNER_COLUMNS)
    df = pd.DataFrame(
        [{col: getattr(winner, col) for col in WINNER_COLUMNS} for winner in result.values()]
    )
    df["popularity_score"] = df["popularity_score"].round(2)
    df["booking_conversion_rate"] = df["booking_conversion_rate"].round(2)
    return df


def rewards_frame(profiles: Dict[str, OperatorRewardProfile]) -> pd.DataFrame:
    """
    One row per operator with display rounding applied.
    """

    if not profiles:
        return pd.DataFrame(columns=REWARD_COLUMNS)
    df = pd.DataFrame(
        [
            {
                "operator_id": p.operator_id,
                "total_score": p.total_score,
                "tours_count": p.tours_count,
                "total_bookings": p.total_bookings,
                "avg_rating": p.avg_rating,
                "total_revenue": p.total_revenue,
                "tier": p.tier_name,
                "tier_badge": p.tier_badge,
                "reward_multiplier": p.reward_multiplier,
                "visibility_boost": p.visibility_boost,
                "achievements": list(p.achievements),
            }
            for p in profiles.values()
        ]
    )
    df["total_score"] = df["total_score"].round(0).astype(int)
    df["total_revenue"] = df["total_revenue"].round(0).astype(int)
    df["avg_rating"] = df["avg_rating"].round(1)
    df["reward_multiplier"] = df["reward_multiplier"].round(2)
    return df


def tier_distribution(profiles: Dict[str, OperatorRewardProfile]) -> Dict[str, int]:
    counts = pd.Series([p.tier_name for p in profiles.values()], dtype=object).value_counts()
    return {str(tier): int(count) for tier, count in counts.items()}
