"""
Random field synthesis for CRM entities.

FixturePool holds the small candidate lists (names, companies, lead
sources, services) that every synthesized value is drawn from.
FieldSynthesizer turns a pool plus a NumPy generator into scalar values:
uniform picks, dates, amounts, line items, and index-derived contact
details that stay unique within a run.

Usage:
    pool = FixturePool.from_faker(seed=42, size=50)
    fields = FieldSynthesizer(pool, np.random.default_rng(42))
    email = fields.email_for("Jane", "Smith", index=3)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypeVar

import numpy as np
from faker import Faker

if TYPE_CHECKING:
    from numpy.random import Generator

    from ..api.base import LineItem

T = TypeVar("T")

# Default fixtures
FIRST_NAMES = [
    "John", "Jane", "Michael", "Emily", "David",
    "Sarah", "Robert", "Lisa", "William", "Emma",
]
LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones",
    "Miller", "Davis", "Garcia", "Rodriguez", "Wilson",
]
COMPANY_NAMES = [
    "Acme Corp", "Globex", "Initech", "Umbrella Corp", "Stark Industries",
    "Wayne Enterprises", "Cyberdyne Systems", "Soylent Corp",
    "Massive Dynamic", "Oscorp",
]
LEAD_SOURCES = ["Website", "Referral", "Cold Call", "Trade Show", "Social Media"]
SERVICES = [
    "Consulting", "Installation", "Maintenance",
    "Repair", "Upgrade", "Custom Development",
]
EMAIL_DOMAINS = ["gmail.com", "yahoo.com", "outlook.com", "example.com", "company.com"]


@dataclass
class FixturePool:
    """
    Candidate values for synthesized fields.

    Attributes:
        first_names: Contact / lead first names
        last_names: Contact / lead last names
        company_names: Account names
        lead_sources: Lead source labels
        services: Line item descriptions
        email_domains: Domains for synthesized emails
    """

    first_names: list[str] = field(default_factory=lambda: list(FIRST_NAMES))
    last_names: list[str] = field(default_factory=lambda: list(LAST_NAMES))
    company_names: list[str] = field(default_factory=lambda: list(COMPANY_NAMES))
    lead_sources: list[str] = field(default_factory=lambda: list(LEAD_SOURCES))
    services: list[str] = field(default_factory=lambda: list(SERVICES))
    email_domains: list[str] = field(default_factory=lambda: list(EMAIL_DOMAINS))

    @classmethod
    def from_faker(cls, seed: int = 42, size: int = 50) -> FixturePool:
        """
        Build a pool with Faker-generated names and companies.

        The default fixtures stay at the front of each list so small runs
        look the same as with the plain pool.

        Args:
            seed: Faker seed for reproducibility
            size: Number of extra names / companies to generate

        Returns:
            FixturePool with extended name and company lists
        """
        fake = Faker()
        fake.seed_instance(seed)
        pool = cls()
        pool.first_names += [fake.first_name() for _ in range(size)]
        pool.last_names += [fake.last_name() for _ in range(size)]
        pool.company_names += [fake.company() for _ in range(size)]
        return pool


def _epoch_ms(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000.0


class FieldSynthesizer:
    """Scalar value synthesis from a FixturePool and a NumPy generator."""

    def __init__(self, pool: FixturePool | None = None, rng: Generator | None = None):
        self.pool = pool or FixturePool()
        self.rng = rng if rng is not None else np.random.default_rng()

    # =========================================================================
    # Primitive draws
    # =========================================================================

    def pick(self, candidates: Sequence[T]) -> T:
        """Pick one element uniformly."""
        if len(candidates) == 0:
            raise ValueError("Cannot pick from an empty pool")
        return candidates[int(self.rng.integers(0, len(candidates)))]

    def random_date(self, start: datetime, end: datetime) -> datetime:
        """
        Pick an instant uniformly between start and end.

        Interpolates linearly over the epoch-millisecond range. Naive
        datetimes are treated as UTC; the result is always UTC-aware.

        Raises:
            ValueError: If start is after end
        """
        start_ms, end_ms = _epoch_ms(start), _epoch_ms(end)
        if start_ms > end_ms:
            raise ValueError(f"Invalid date range: {start} > {end}")
        ms = start_ms + self.rng.random() * (end_ms - start_ms)
        return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)

    def random_amount(self, low: int, high: int) -> int:
        """
        Pick an integer uniformly in [low, high] inclusive.

        Raises:
            ValueError: If low > high
        """
        if low > high:
            raise ValueError(f"Invalid amount range: {low} > {high}")
        return int(self.rng.integers(low, high + 1))

    def chance(self, probability: float) -> bool:
        """True with the given probability."""
        return bool(self.rng.random() < probability)

    # =========================================================================
    # Index-derived fields (unique within a run)
    # =========================================================================

    def name_for(self, index: int) -> tuple[str, str]:
        """First / last name pair cycling through the pools by index."""
        first = self.pool.first_names[index % len(self.pool.first_names)]
        last = self.pool.last_names[index % len(self.pool.last_names)]
        return first, last

    def company_for(self, index: int) -> str:
        return self.pool.company_names[index % len(self.pool.company_names)]

    def email_for(self, first_name: str, last_name: str, index: int) -> str:
        """Email built from the name plus the index, so repeated names stay distinct."""
        domain = self.pool.email_domains[index % len(self.pool.email_domains)]
        return f"{first_name.lower()}.{last_name.lower()}.{index}@{domain}"

    @staticmethod
    def phone_for(index: int, prefix: int = 200) -> str:
        """
        555 phone number derived from the index.

        Unique for index < 10,000 * (1000 - prefix).
        """
        if index < 0:
            raise ValueError(f"Phone index must be >= 0, got {index}")
        return f"555-{prefix + index // 10_000:03d}-{index % 10_000:04d}"

    # =========================================================================
    # Composite fields
    # =========================================================================

    def line_items(self, count: int = 1) -> list[LineItem]:
        """Line items with a service description, quantity 1-3, unit price 100-1000."""
        return [
            {
                "description": self.pick(self.pool.services),
                "quantity": self.random_amount(1, 3),
                "unit_price": float(self.random_amount(100, 1000)),
            }
            for _ in range(count)
        ]
