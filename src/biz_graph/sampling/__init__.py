"""
Sampling utilities for synthetic entity generation.

This module provides:
- Weighted status sampling over label -> weight maps
- Fixture pools and scalar field synthesis (names, dates, amounts)
"""

from .fields import FieldSynthesizer, FixturePool
from .weighted import WeightedStatusSampler, weighted_choice

__all__ = [
    # Weighted
    "WeightedStatusSampler",
    "weighted_choice",
    # Fields
    "FixturePool",
    "FieldSynthesizer",
]
