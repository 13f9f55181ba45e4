"""
belize_vibes
============

Pricing and ranking core of the BelizeVibes tour marketplace.

The package groups together the booking price calculator, promotion
eligibility checks, the "most popular per category" ranker with its
caching wrapper, tour operator reward scoring, and reporting helpers.
All computations are pure functions over already-fetched data.
"""

from . import (
    caching,
    data_models,
    errors,
    monitoring,
    popularity,
    pricing,
    promotions,
    rewards,
)
from .errors import InvalidInput
from .popularity import rank_popular
from .pricing import compute_pricing
from .rewards import score_operators

__all__ = [
    "caching",
    "data_models",
    "errors",
    "monitoring",
    "popularity",
    "pricing",
    "promotions",
    "rewards",
    "InvalidInput",
    "compute_pricing",
    "rank_popular",
    "score_operators",
]
