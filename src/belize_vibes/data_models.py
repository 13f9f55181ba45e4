"""
Core data models used across the belize_vibes package.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

PERCENTAGE = "percentage"
FIXED_AMOUNT = "fixed_amount"
DISCOUNT_TYPES = (PERCENTAGE, FIXED_AMOUNT)


@dataclass
class Adventure:
    """
    A bookable tour listing with its pricing rules and booking stats.
    """

    adventure_id: str
    base_price: float
    title: str = ""
    operator_id: Optional[str] = None
    group_discount_percentage: float = 0.0
    early_bird_discount_percentage: float = 0.0
    early_bird_days: int = 7
    booking_count: int = 0
    average_rating: float = 0.0
    total_reviews: int = 0
    last_booked_at: Optional[datetime] = None


@dataclass
class Promotion:
    """
    A promo code with its discount rule, applicability filters and limits.
    """

    code: str
    discount_type: str
    discount_value: float
    name: str = ""
    min_booking_amount: float = 0.0
    max_discount_amount: Optional[float] = None
    adventure_ids: Optional[Sequence[str]] = None
    user_ids: Optional[Sequence[str]] = None
    new_users_only: bool = False
    usage_limit: Optional[int] = None
    usage_count: int = 0
    per_user_limit: Optional[int] = 1
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True


@dataclass
class AddOnSelection:
    """
    One extra (equipment, meal, transfer) attached to a booking in progress.
    """

    name: str
    unit_price: float
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PricingBreakdown:
    """
    Immutable result of a pricing run.
    """

    base_price: float
    participants: int
    subtotal: float
    group_discount: float
    early_bird_discount: float
    promo_discount: float
    add_ons_total: float
    tax_amount: float
    total_amount: float

    @property
    def discount_total(self) -> float:
        return self.group_discount + self.early_bird_discount + self.promo_discount


@dataclass
class PopularityAggregate:
    """
    Per-listing activity over the trailing window, the input to ranking.

    ``days_since_last_booking`` is ``math.inf`` for listings never booked.
    """

    listing_id: str
    booking_count: int = 0
    views: float = 0.0
    days_since_last_booking: float = math.inf
    average_rating: float = 0.0
    total_reviews: int = 0
    revenue: float = 0.0
    completed_bookings: int = 0
    title: str = ""


@dataclass(frozen=True)
class PopularityWinner:
    """
    The top listing of one category after a ranking run.
    """

    category: str
    listing_id: str
    popularity_score: float
    booking_count: int
    visits_count: float
    booking_conversion_rate: float
    revenue_generated: float


@dataclass
class ListingPerformance:
    """
    Lifetime performance of one listing, the input to operator rewards.
    """

    listing_id: str
    operator_id: str
    booking_count: int = 0
    average_rating: float = 0.0
    total_reviews: int = 0
    price_per_person: float = 0.0
    days_since_last_booking: float = math.inf
    title: str = ""


@dataclass(frozen=True)
class RewardTier:
    name: str
    min_score: float
    booking_boost: float
    visibility_boost: bool
    badge: str


@dataclass
class OperatorRewardProfile:
    """
    Accumulated reward standing of one operator across all their listings.
    """

    operator_id: str
    total_score: float = 0.0
    tours_count: int = 0
    total_bookings: int = 0
    avg_rating: float = 0.0
    total_revenue: float = 0.0
    tier: Optional[RewardTier] = None
    reward_multiplier: float = 1.0
    achievements: List[str] = field(default_factory=list)

    @property
    def tier_name(self) -> str:
        return self.tier.name if self.tier else "none"

    @property
    def tier_badge(self) -> str:
        return self.tier.badge if self.tier else "Getting Started"

    @property
    def visibility_boost(self) -> bool:
        return self.tier.visibility_boost if self.tier else False
