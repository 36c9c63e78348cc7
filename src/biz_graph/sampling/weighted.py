"""
Weighted status sampling.

Draws one label from a discrete label -> weight distribution using a
cumulative step function over [0, total_weight).
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

import numpy as np

if TYPE_CHECKING:
    from numpy.random import Generator

K = TypeVar("K", str, Enum)


def weighted_choice(weights: Mapping[K, float], rng: Generator | None = None) -> K:
    """
    Pick one key with probability weight / sum(weights).

    Cumulative bounds are built in mapping iteration order. The first key
    whose upper bound exceeds the uniform draw wins, so zero-weight keys
    (empty intervals) are never returned. If rounding pushes the draw past
    every bound, the first key is returned.

    Args:
        weights: Mapping of label to non-negative weight
        rng: NumPy random generator (uses a fresh default_rng if None)

    Returns:
        The drawn label

    Raises:
        ValueError: If weights is empty, has a negative or non-finite weight,
            or sums to 0
    """
    if not weights:
        raise ValueError("Cannot sample from an empty weight map")

    labels = list(weights.keys())
    values = np.array([float(weights[k]) for k in labels], dtype=float)
    if not np.isfinite(values).all():
        raise ValueError(f"Non-finite weight in {dict(weights)!r}")
    if (values < 0).any():
        raise ValueError(f"Negative weight in {dict(weights)!r}")

    cumulative = np.cumsum(values)
    total = cumulative[-1]
    if total <= 0:
        raise ValueError(f"Weights sum to zero in {dict(weights)!r}")
    if not np.isfinite(total):
        raise ValueError(f"Weights overflow in {dict(weights)!r}")

    if rng is None:
        rng = np.random.default_rng()
    draw = rng.random() * total

    for label, bound in zip(labels, cumulative):
        if draw < bound:
            return label
    return labels[0]


class WeightedStatusSampler(Generic[K]):
    """
    Reusable sampler bound to one weight map and one random generator.

    Validates the weight map once at construction so a bad config fails
    before any entity is created.

    Usage:
        sampler = WeightedStatusSampler({"Draft": 20, "Accepted": 80}, rng)
        status = sampler.draw()
    """

    def __init__(self, weights: Mapping[K, float], rng: Generator | None = None):
        if not weights:
            raise ValueError("Cannot build a sampler from an empty weight map")
        self.weights = dict(weights)
        self.rng = rng if rng is not None else np.random.default_rng()
        # Fail fast on non-finite, negative or all-zero weights
        values = np.array(list(self.weights.values()), dtype=float)
        total = values.sum()
        if not np.isfinite(values).all() or (values < 0).any() or not 0 < total < np.inf:
            raise ValueError(f"Invalid weights: {self.weights!r}")

    @property
    def probabilities(self) -> dict[K, float]:
        """Normalized probability of each label."""
        total = float(sum(self.weights.values()))
        return {k: float(w) / total for k, w in self.weights.items()}

    def draw(self) -> K:
        """Draw one label."""
        return weighted_choice(self.weights, self.rng)

    def draw_many(self, n: int) -> list[K]:
        """Draw n labels independently."""
        return [self.draw() for _ in range(n)]
