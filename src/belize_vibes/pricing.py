"""
Booking price calculation.

Calculation flow:
1. Base price x participants = subtotal
2. Group discount when the party reaches the group threshold
3. Early-bird discount (computed by the caller, clamped here)
4. Promotion discount, capped and never pushing discounts past the subtotal
5. Add-ons added on top
6. Tax on the discounted amount plus add-ons
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Union

from .data_models import (
    DISCOUNT_TYPES,
    PERCENTAGE,
    AddOnSelection,
    Adventure,
    PricingBreakdown,
    Promotion,
)
from .errors import InvalidInput

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class PricingPolicy:
    """
    Tunable constants of the pricing rules.
    """

    group_min_participants: int = 4
    group_discount_rate: float = 0.10


DEFAULT_POLICY = PricingPolicy()


def _validate_promotion(promotion: Promotion) -> None:
    if promotion.discount_type not in DISCOUNT_TYPES:
        raise InvalidInput(f"Unknown discount type: {promotion.discount_type!r}")
    if promotion.discount_value < 0:
        raise InvalidInput("Promotion discount value cannot be negative")
    if promotion.max_discount_amount is not None and promotion.max_discount_amount < 0:
        raise InvalidInput("Promotion max discount amount cannot be negative")


def promotion_discount(promotion: Promotion, subtotal: float) -> float:
    """
    Raw promotion discount on a subtotal, after the promotion's own cap.
    """

    if promotion.discount_type == PERCENTAGE:
        raw = subtotal * promotion.discount_value / 100
    else:
        raw = promotion.discount_value
    if promotion.max_discount_amount is not None:
        raw = min(raw, promotion.max_discount_amount)
    return raw


def compute_pricing(
    base_price: float,
    participants: int,
    add_ons: Iterable[AddOnSelection] = (),
    promotion: Optional[Promotion] = None,
    early_bird_amount: float = 0.0,
    tax_rate: float = 0.0,
    policy: PricingPolicy = DEFAULT_POLICY,
) -> PricingBreakdown:
    """
    Compute the full price breakdown of a booking.

    Parameters
    ----------
    base_price:
        Price per participant, must be positive.
    participants:
        Party size, an integer >= 1.
    add_ons:
        Selected extras; each contributes ``unit_price * quantity``.
    promotion:
        An already-validated applicable promotion, or None.
    early_bird_amount:
        Pre-computed early-bird amount, clamped to ``[0, subtotal]``.
    tax_rate:
        Fraction applied to the discounted subtotal plus add-ons.

    Raises
    ------
    InvalidInput
        On a non-positive price, a party below one, negative add-ons,
        a negative tax rate or a malformed promotion.
    """

    add_ons = list(add_ons)
    if base_price <= 0:
        raise InvalidInput(f"Base price must be positive, got {base_price}")
    if isinstance(participants, bool) or not isinstance(participants, numbers.Integral):
        raise InvalidInput(f"Participants must be an integer, got {participants!r}")
    if participants < 1:
        raise InvalidInput(f"Participants must be at least 1, got {participants}")
    for add_on in add_ons:
        if add_on.unit_price < 0 or add_on.quantity < 0:
            raise InvalidInput(f"Add-on {add_on.name!r} has a negative price or quantity")
    if tax_rate < 0:
        raise InvalidInput(f"Tax rate cannot be negative, got {tax_rate}")
    if promotion is not None:
        _validate_promotion(promotion)

    subtotal = base_price * participants

    group_discount = 0.0
    if participants >= policy.group_min_participants:
        group_discount = subtotal * policy.group_discount_rate

    early_bird = min(max(early_bird_amount, 0.0), subtotal)

    promo = 0.0
    if promotion is not None:
        headroom = subtotal - group_discount - early_bird
        promo = max(0.0, min(promotion_discount(promotion, subtotal), headroom))

    add_ons_total = sum(add_on.line_total for add_on in add_ons)

    taxable = max(0.0, subtotal - group_discount - early_bird - promo + add_ons_total)
    tax_amount = taxable * tax_rate
    total_amount = max(0.0, taxable + tax_amount)

    logger.debug(
        "Priced %d x %.2f: subtotal=%.2f discounts=%.2f total=%.2f",
        participants,
        base_price,
        subtotal,
        group_discount + early_bird + promo,
        total_amount,
    )

    return PricingBreakdown(
        base_price=base_price,
        participants=int(participants),
        subtotal=subtotal,
        group_discount=group_discount,
        early_bird_discount=early_bird,
        promo_discount=promo,
        add_ons_total=add_ons_total,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )


def days_in_advance(booking_date: DateLike, today: DateLike) -> int:
    """
    Whole days between today and the booking date, rounded up.
    """

    delta = booking_date - today
    return math.ceil(delta.total_seconds() / 86400)


def early_bird_discount(
    adventure: Adventure,
    subtotal: float,
    booking_date: DateLike,
    today: DateLike,
) -> float:
    """
    Early-bird amount for a booking made far enough ahead of the trip.
    """

    if adventure.early_bird_discount_percentage <= 0:
        return 0.0
    if days_in_advance(booking_date, today) < adventure.early_bird_days:
        return 0.0
    return subtotal * adventure.early_bird_discount_percentage / 100


def price_booking(
    adventure: Adventure,
    participants: int,
    booking_date: DateLike,
    today: DateLike,
    add_ons: Iterable[AddOnSelection] = (),
    promotion: Optional[Promotion] = None,
    tax_rate: float = 0.0,
    policy: PricingPolicy = DEFAULT_POLICY,
) -> PricingBreakdown:
    """
    Price a booking of an adventure on a date, deriving the early-bird amount.
    """

    if adventure.base_price <= 0:
        raise InvalidInput(f"Base price must be positive, got {adventure.base_price}")
    early = 0.0
    if isinstance(participants, numbers.Integral) and participants >= 1:
        early = early_bird_discount(
            adventure, adventure.base_price * participants, booking_date, today
        )
    return compute_pricing(
        adventure.base_price,
        participants,
        add_ons=add_ons,
        promotion=promotion,
        early_bird_amount=early,
        tax_rate=tax_rate,
        policy=policy,
    )
