"""
Tests for the sampling module.

Tests weighted status sampling and scalar field synthesis.
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from biz_graph.sampling import (
    FieldSynthesizer,
    FixturePool,
    WeightedStatusSampler,
    weighted_choice,
)
from biz_graph.statuses import QuoteStatus


class FixedRandom:
    """Stand-in generator returning a fixed uniform draw."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class TestWeightedChoice:
    """Tests for weighted_choice."""

    def test_frequencies_converge_to_weights(self):
        """100k draws land within 2% of weight / total for every label."""
        weights = {"New": 20, "Contacted": 15, "Qualified": 25, "Unqualified": 10, "Converted": 30}
        rng = np.random.default_rng(7)
        draws = 100_000
        counts = dict.fromkeys(weights, 0)
        for _ in range(draws):
            counts[weighted_choice(weights, rng)] += 1

        total = sum(weights.values())
        for label, weight in weights.items():
            assert abs(counts[label] / draws - weight / total) < 0.02, label

    def test_zero_weight_never_drawn(self):
        """A zero-weight label has an empty interval and is never returned."""
        weights = {"Draft": 0, "Presented": 0, "Accepted": 100, "Declined": 0}
        rng = np.random.default_rng(0)
        assert {weighted_choice(weights, rng) for _ in range(2_000)} == {"Accepted"}

    def test_cumulative_bounds_in_iteration_order(self):
        """Draw is matched against cumulative bounds in mapping order."""
        weights = {"a": 1, "b": 1, "c": 2}  # bounds 1, 2, 4
        assert weighted_choice(weights, FixedRandom(0.0)) == "a"
        assert weighted_choice(weights, FixedRandom(0.3)) == "b"  # 1.2
        assert weighted_choice(weights, FixedRandom(0.5)) == "c"  # 2.0 is not < 2
        assert weighted_choice(weights, FixedRandom(0.99)) == "c"

    def test_draw_past_every_bound_falls_back_to_first(self):
        """Rounding past the total returns the first label."""
        weights = {"first": 1, "second": 1}
        assert weighted_choice(weights, FixedRandom(1.0)) == "first"

    def test_enum_keys(self):
        """Enum members work as labels."""
        weights = {QuoteStatus.DRAFT: 0, QuoteStatus.ACCEPTED: 1}
        assert weighted_choice(weights, np.random.default_rng(1)) is QuoteStatus.ACCEPTED

    def test_empty_map_fails_fast(self):
        """Empty map raises."""
        with pytest.raises(ValueError, match="empty"):
            weighted_choice({})

    def test_negative_weight_rejected(self):
        """Negative weights raise."""
        with pytest.raises(ValueError, match="Negative"):
            weighted_choice({"a": 1, "b": -1})

    def test_all_zero_rejected(self):
        """All-zero weights raise."""
        with pytest.raises(ValueError, match="zero"):
            weighted_choice({"a": 0, "b": 0})

    @pytest.mark.parametrize("bad", [float("inf"), float("nan")])
    def test_non_finite_weight_rejected(self, bad):
        """Infinite or NaN weights never reach the draw."""
        with pytest.raises(ValueError, match="Non-finite"):
            weighted_choice({"Draft": 0, "Accepted": bad})

    def test_overflowing_total_rejected(self):
        """Finite weights summing to infinity are rejected."""
        with pytest.raises(ValueError, match="overflow"):
            weighted_choice({"a": 1e308, "b": 1e308})


class TestWeightedStatusSampler:
    """Tests for WeightedStatusSampler."""

    def test_probabilities_normalized(self):
        """Probabilities sum to one."""
        sampler = WeightedStatusSampler({"Draft": 20, "Sent": 30, "Paid": 40, "Void": 10})
        assert sampler.probabilities == pytest.approx(
            {"Draft": 0.2, "Sent": 0.3, "Paid": 0.4, "Void": 0.1}
        )

    def test_same_seed_same_sequence(self):
        """Same seed gives the same draws."""
        weights = {"Pending": 30, "Scheduled": 20, "In Progress": 25, "Completed": 25}
        a = WeightedStatusSampler(weights, np.random.default_rng(99)).draw_many(50)
        b = WeightedStatusSampler(weights, np.random.default_rng(99)).draw_many(50)
        assert a == b

    def test_invalid_weights_fail_at_construction(self):
        """Bad weights fail at construction."""
        with pytest.raises(ValueError):
            WeightedStatusSampler({})
        with pytest.raises(ValueError):
            WeightedStatusSampler({"a": 0})
        with pytest.raises(ValueError):
            WeightedStatusSampler({"a": 0, "b": float("inf")})
        with pytest.raises(ValueError):
            WeightedStatusSampler({"a": float("nan")})


class TestFieldSynthesizer:
    """Tests for FieldSynthesizer."""

    def test_pick_uniform_from_pool(self, fields):
        """pick reaches every candidate."""
        pool = ["a", "b", "c"]
        picks = [fields.pick(pool) for _ in range(300)]
        assert set(picks) == set(pool)

    def test_pick_empty_pool_fails(self, fields):
        """pick on an empty pool raises."""
        with pytest.raises(ValueError):
            fields.pick([])

    def test_random_date_within_range(self, fields):
        """Dates fall inside the range and are UTC-aware."""
        start = datetime(2023, 1, 1, tzinfo=timezone.utc)
        end = datetime(2023, 12, 31, tzinfo=timezone.utc)
        for _ in range(200):
            value = fields.random_date(start, end)
            assert start <= value <= end
            assert value.tzinfo is not None

    def test_random_date_naive_treated_as_utc(self, fields):
        """Naive bounds are read as UTC."""
        value = fields.random_date(datetime(2024, 1, 1), datetime(2024, 1, 1))
        assert value == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_random_date_inverted_range_fails(self, fields):
        """Inverted date range raises."""
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            fields.random_date(start, start - timedelta(days=1))

    def test_random_amount_inclusive(self, fields):
        """Amounts include both bounds."""
        values = {fields.random_amount(1, 3) for _ in range(300)}
        assert values == {1, 2, 3}

    def test_random_amount_single_value(self, fields):
        """Equal bounds return that value."""
        assert fields.random_amount(5, 5) == 5

    def test_random_amount_inverted_range_fails(self, fields):
        """Inverted amount range raises."""
        with pytest.raises(ValueError):
            fields.random_amount(10, 1)

    def test_emails_unique_across_repeated_names(self, fields):
        """Names cycle through the pool but emails stay distinct by index."""
        emails = set()
        for i in range(100):
            first, last = fields.name_for(i)
            emails.add(fields.email_for(first, last, i))
        assert len(emails) == 100

    def test_email_is_deterministic(self, fields):
        """Emails depend only on name and index."""
        assert fields.email_for("Jane", "Smith", 3) == fields.email_for("Jane", "Smith", 3)
        assert fields.email_for("Jane", "Smith", 3).startswith("jane.smith.3@")

    def test_phones_unique(self):
        """Phones are unique per index."""
        phones = {FieldSynthesizer.phone_for(i) for i in range(25_000)}
        assert len(phones) == 25_000
        assert FieldSynthesizer.phone_for(7, prefix=300) == "555-300-0007"

    def test_line_items_shape(self, fields):
        """Line items respect quantity and price ranges."""
        items = fields.line_items(count=3)
        assert len(items) == 3
        for item in items:
            assert item["description"] in fields.pool.services
            assert 1 <= item["quantity"] <= 3
            assert 100 <= item["unit_price"] <= 1000


class TestFixturePool:
    """Tests for FixturePool."""

    def test_default_pool_matches_fixtures(self):
        """Default pool holds the fixture lists."""
        pool = FixturePool()
        assert pool.company_names[0] == "Acme Corp"
        assert "Referral" in pool.lead_sources

    def test_from_faker_extends_and_keeps_defaults(self):
        """Faker extends the pool after the defaults."""
        pool = FixturePool.from_faker(seed=1, size=20)
        assert pool.first_names[:3] == ["John", "Jane", "Michael"]
        assert len(pool.first_names) == 30
        assert len(pool.company_names) == 30

    def test_from_faker_reproducible(self):
        """Faker pools are reproducible by seed."""
        assert FixturePool.from_faker(seed=5).last_names == FixturePool.from_faker(seed=5).last_names
