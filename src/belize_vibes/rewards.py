"""
Tour operator reward scoring: per-listing scores, tiers and achievements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .data_models import Adventure, ListingPerformance, OperatorRewardProfile, RewardTier
from .errors import InvalidInput
from .popularity import days_since

logger = logging.getLogger(__name__)

REWARD_TIERS: Sequence[RewardTier] = (
    RewardTier("bronze", 50, 1.05, False, "Bronze Partner"),
    RewardTier("silver", 100, 1.10, True, "Silver Partner"),
    RewardTier("gold", 200, 1.20, True, "Gold Partner"),
    RewardTier("platinum", 500, 1.30, True, "Platinum Partner"),
)


@dataclass(frozen=True)
class RewardPolicy:
    """
    Achievement thresholds and their multipliers, applied in field order:
    excellence, volume, diversity.
    """

    excellence_min_rating: float = 4.8
    excellence_multiplier: float = 1.05
    volume_min_bookings: int = 100
    volume_multiplier: float = 1.10
    diversity_min_tours: int = 5
    diversity_multiplier: float = 1.05
    reviews_cap: int = 50
    recency_window_days: float = 30.0


DEFAULT_POLICY = RewardPolicy()

EXCELLENCE_AWARD = "Excellence Award"
VOLUME_LEADER = "Volume Leader"
DIVERSE_PORTFOLIO = "Diverse Portfolio"


def _validate(listing: ListingPerformance) -> None:
    for name in (
        "booking_count",
        "average_rating",
        "total_reviews",
        "price_per_person",
        "days_since_last_booking",
    ):
        if getattr(listing, name) < 0:
            raise InvalidInput(f"Listing {listing.listing_id}: {name} cannot be negative")


def tour_score(listing: ListingPerformance, policy: RewardPolicy = DEFAULT_POLICY) -> float:
    """
    Score contribution of one listing to its operator's total.
    """

    _validate(listing)
    recency_bonus = max(0.0, policy.recency_window_days - listing.days_since_last_booking) * 2
    return (
        listing.booking_count * 5
        + listing.average_rating * 10
        + min(listing.total_reviews, policy.reviews_cap) * 2
        + recency_bonus
        + (listing.price_per_person * listing.booking_count) * 0.01
    )


def assign_tier(
    score: float, tiers: Sequence[RewardTier] = REWARD_TIERS
) -> Optional[RewardTier]:
    """
    Highest tier whose minimum score is met, or None below the lowest tier.
    """

    reached = [tier for tier in tiers if score >= tier.min_score]
    if not reached:
        return None
    return max(reached, key=lambda tier: tier.min_score)


def apply_achievements(
    profile: OperatorRewardProfile, policy: RewardPolicy = DEFAULT_POLICY
) -> None:
    # bonuses are checked whether or not a tier was reached
    if profile.avg_rating >= policy.excellence_min_rating:
        profile.achievements.append(EXCELLENCE_AWARD)
        profile.reward_multiplier *= policy.excellence_multiplier
    if profile.total_bookings >= policy.volume_min_bookings:
        profile.achievements.append(VOLUME_LEADER)
        profile.reward_multiplier *= policy.volume_multiplier
    if profile.tours_count >= policy.diversity_min_tours:
        profile.achievements.append(DIVERSE_PORTFOLIO)
        profile.reward_multiplier *= policy.diversity_multiplier


def score_operators(
    listings: Iterable[ListingPerformance],
    owner_of: Optional[Callable[[ListingPerformance], str]] = None,
    tiers: Sequence[RewardTier] = REWARD_TIERS,
    policy: RewardPolicy = DEFAULT_POLICY,
) -> Dict[str, OperatorRewardProfile]:
    """
    Build a reward profile for every operator owning at least one listing.

    Listings are processed in listing id order so the running rating mean is
    reproducible. The result is ordered by total score, highest first.
    """

    if owner_of is None:
        owner_of = lambda listing: listing.operator_id  # noqa: E731

    listings = sorted(listings, key=lambda listing: listing.listing_id)
    for listing in listings:
        _validate(listing)

    profiles: Dict[str, OperatorRewardProfile] = {}
    for listing in listings:
        operator_id = owner_of(listing)
        profile = profiles.get(operator_id)
        if profile is None:
            profile = profiles[operator_id] = OperatorRewardProfile(operator_id=operator_id)

        profile.total_score += tour_score(listing, policy)
        profile.tours_count += 1
        profile.total_bookings += listing.booking_count
        n = profile.tours_count
        profile.avg_rating = (profile.avg_rating * (n - 1) + listing.average_rating) / n
        profile.total_revenue += listing.price_per_person * listing.booking_count

    for profile in profiles.values():
        tier = assign_tier(profile.total_score, tiers)
        if tier is not None:
            profile.tier = tier
            profile.reward_multiplier = tier.booking_boost
            profile.achievements.append(tier.badge)
        apply_achievements(profile, policy)

    ordered = sorted(profiles.values(), key=lambda p: (-p.total_score, p.operator_id))
    logger.debug("Scored %d listings for %d operators", len(listings), len(ordered))
    return {profile.operator_id: profile for profile in ordered}


def listing_performance(adventure: Adventure, now: datetime) -> ListingPerformance:
    if adventure.operator_id is None:
        raise InvalidInput(f"Adventure {adventure.adventure_id} has no operator")
    return ListingPerformance(
        listing_id=adventure.adventure_id,
        operator_id=adventure.operator_id,
        booking_count=adventure.booking_count,
        average_rating=adventure.average_rating,
        total_reviews=adventure.total_reviews,
        price_per_person=adventure.base_price,
        days_since_last_booking=days_since(adventure.last_booked_at, now),
        title=adventure.title,
    )


def reward_updates(profiles: Dict[str, OperatorRewardProfile]) -> List[Dict[str, object]]:
    """
    Rows a caller would upsert for operators holding a tier.
    """

    return [
        {
            "operator_id": profile.operator_id,
            "reward_tier": profile.tier_name,
            "reward_multiplier": round(profile.reward_multiplier, 2),
            "achievements": list(profile.achievements),
        }
        for profile in profiles.values()
        if profile.tier is not None
    ]
