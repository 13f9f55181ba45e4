"""
Promotion eligibility checks, run before a promotion is handed to pricing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from .data_models import Promotion

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def rejection_reason(
    promotion: Promotion,
    *,
    subtotal: float,
    now: datetime,
    adventure_id: Optional[str] = None,
    user_id: Optional[str] = None,
    is_new_user: bool = False,
    user_usage_count: int = 0,
) -> Optional[str]:
    """
    Return why a promotion cannot be used for this booking, or None.

    Checks run in a fixed order so the first failing rule is reported.
    """

    if not promotion.is_active:
        return "inactive"
    if promotion.starts_at is not None and now < promotion.starts_at:
        return "not_started"
    if promotion.expires_at is not None and now > promotion.expires_at:
        return "expired"
    if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
        return "usage_limit_reached"
    if promotion.adventure_ids and adventure_id not in promotion.adventure_ids:
        return "adventure_not_eligible"
    if promotion.user_ids and user_id not in promotion.user_ids:
        return "user_not_eligible"
    if promotion.new_users_only and not is_new_user:
        return "new_users_only"
    if promotion.per_user_limit is not None and user_usage_count >= promotion.per_user_limit:
        return "per_user_limit_reached"
    if subtotal < promotion.min_booking_amount:
        return "below_min_booking_amount"
    return None


def is_applicable(promotion: Promotion, **context) -> bool:
    return rejection_reason(promotion, **context) is None


def find_applicable(
    promotions: Iterable[Promotion], code: str, **context
) -> Optional[Promotion]:
    """
    Look up a promotion by code and return it only if it can be applied.
    """

    wanted = normalize_code(code)
    for promotion in promotions:
        if normalize_code(promotion.code) != wanted:
            continue
        reason = rejection_reason(promotion, **context)
        if reason is not None:
            logger.info("Promotion %s rejected: %s", wanted, reason)
            return None
        return promotion
    logger.info("Promotion %s not found", wanted)
    return None
