"""
Generation configuration.

GenerationConfig carries per-kind entity counts and per-status-kind weight
maps, plus the knobs the batch generator needs (seed, date window, notes,
primary-link probability). It validates on construction and reports every
problem at once through ConfigError.

YAML layout (all keys optional):

    seed: 42
    start_date: 2023-01-01
    notes: Created for chart testing
    primary_link_probability: 0.3
    counts:
      accounts: 3
      contacts: 5
      leads: 10
      quotes: 8
      work_orders: 6
      invoices: 7
    status_weights:
      quote: {Draft: 20, Presented: 30, Accepted: 40, Declined: 10}
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .statuses import STATUS_ENUMS, parse_status

ENTITY_KINDS = ("accounts", "contacts", "leads", "quotes", "work_orders", "invoices")

DEFAULT_COUNTS: dict[str, int] = {
    "accounts": 3,
    "contacts": 5,
    "leads": 10,
    "quotes": 8,
    "work_orders": 6,
    "invoices": 7,
}

DEFAULT_STATUS_WEIGHTS: dict[str, dict[str, float]] = {
    "lead": {
        "New": 20,
        "Contacted": 15,
        "Qualified": 25,
        "Unqualified": 10,
        "Converted": 30,
    },
    "quote": {
        "Draft": 20,
        "Presented": 30,
        "Accepted": 40,
        "Declined": 10,
    },
    "work_order": {
        "Pending": 30,
        "Scheduled": 20,
        "In Progress": 25,
        "Completed": 25,
    },
    "invoice": {
        "Draft": 20,
        "Sent": 30,
        "Paid": 40,
        "Void": 10,
    },
}

_TOP_LEVEL_KEYS = {
    "seed",
    "start_date",
    "notes",
    "primary_link_probability",
    "counts",
    "status_weights",
}


def _is_number(value: Any) -> bool:
    """Finite int or float (bools excluded)."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _copy_mapping(value: Any) -> Any:
    """Shallow-copy a mapping (None -> {}); other values pass through for validate()."""
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    return value


def _weight_problems(kind: str, weights: Any) -> list[str]:
    """Problems with one status kind's weight map."""
    if kind not in STATUS_ENUMS:
        return [f"status_weights: unknown status kind {kind!r}"]
    if not isinstance(weights, Mapping):
        return [f"status_weights.{kind}: must be a mapping of label -> weight, got {weights!r}"]
    if not weights:
        return [f"status_weights.{kind}: must not be empty"]

    problems = []
    for label, weight in weights.items():
        try:
            parse_status(kind, label)
        except ValueError as e:
            problems.append(f"status_weights.{kind}: {e}")
        if not _is_number(weight) or weight < 0:
            problems.append(
                f"status_weights.{kind}.{label}: weight must be a finite number >= 0, got {weight!r}"
            )
    finite = [w for w in weights.values() if _is_number(w)]
    if len(finite) == len(weights) and sum(finite) <= 0:
        problems.append(f"status_weights.{kind}: at least one weight must be positive")
    elif not math.isfinite(sum(finite)):
        problems.append(f"status_weights.{kind}: weights overflow when summed")
    return problems


@dataclass
class GenerationConfig:
    """
    Counts and status distributions for one batch run.

    Attributes:
        counts: Entity kind -> number to create (>= 0)
        status_weights: Status kind -> {label: weight}; relative magnitudes
            set the probabilities, zero-weight labels are never drawn
        seed: Random seed (None = non-reproducible)
        start_date: Earliest issue date for quotes and invoices
        notes: Notes stamped on every created entity
        primary_link_probability: Chance a batch contact is its account's primary
    """

    counts: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_COUNTS))
    status_weights: dict[str, dict[str, float]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_STATUS_WEIGHTS.items()}
    )
    seed: int | None = None
    start_date: date = date(2023, 1, 1)
    notes: str = "Created for chart testing"
    primary_link_probability: float = 0.3

    def __post_init__(self) -> None:
        # Partial overrides fall back to defaults per key
        if isinstance(self.counts, Mapping):
            self.counts = {**DEFAULT_COUNTS, **self.counts}
        if isinstance(self.status_weights, Mapping):
            self.status_weights = {
                **{k: dict(v) for k, v in DEFAULT_STATUS_WEIGHTS.items()},
                **self.status_weights,
            }
        if isinstance(self.start_date, datetime):
            self.start_date = self.start_date.date()
        problems = self.validate()
        if problems:
            raise ConfigError(problems)

    def validate(self) -> list[str]:
        """Return every problem with this config (empty list if valid)."""
        problems: list[str] = []

        if not isinstance(self.counts, Mapping):
            problems.append(f"counts: must be a mapping of kind -> count, got {self.counts!r}")
        else:
            for kind, value in self.counts.items():
                if kind not in ENTITY_KINDS:
                    problems.append(f"counts: unknown entity kind {kind!r}")
                elif not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    problems.append(f"counts.{kind}: must be an integer >= 0, got {value!r}")

        if not isinstance(self.status_weights, Mapping):
            problems.append(
                f"status_weights: must be a mapping of kind -> weights, got {self.status_weights!r}"
            )
        else:
            for kind, weights in self.status_weights.items():
                problems.extend(_weight_problems(kind, weights))

        if self.seed is not None and (not isinstance(self.seed, int) or isinstance(self.seed, bool)):
            problems.append(f"seed: must be an integer, got {self.seed!r}")
        if not isinstance(self.notes, str):
            problems.append(f"notes: must be a string, got {self.notes!r}")

        p = self.primary_link_probability
        if not _is_number(p) or not 0.0 <= p <= 1.0:
            problems.append(f"primary_link_probability: must be a number in [0, 1], got {p!r}")

        if not isinstance(self.start_date, date):
            problems.append(f"start_date: must be a date, got {self.start_date!r}")
        elif self.start_date > date.today():
            problems.append(f"start_date: {self.start_date} is in the future")

        return problems

    def weights_for(self, kind: str) -> dict[Enum, float]:
        """Weight map for a status kind keyed by enum member."""
        return {
            parse_status(kind, label): float(weight)
            for label, weight in self.status_weights[kind].items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenerationConfig":
        """
        Build a config from a plain dict (e.g. parsed YAML).

        Raises:
            ConfigError: If keys are unknown or values invalid
        """
        unknown = set(data) - _TOP_LEVEL_KEYS
        if unknown:
            raise ConfigError([f"unknown key {k!r}" for k in sorted(unknown)])

        kwargs: dict[str, Any] = {}
        for key in ("seed", "notes", "primary_link_probability"):
            if key in data:
                kwargs[key] = data[key]
        if "start_date" in data:
            start = data["start_date"]
            if isinstance(start, str):
                try:
                    start = date.fromisoformat(start)
                except ValueError:
                    raise ConfigError([f"start_date: not an ISO date: {start!r}"])
            kwargs["start_date"] = start
        if "counts" in data:
            kwargs["counts"] = _copy_mapping(data["counts"])
        if "status_weights" in data:
            weights = _copy_mapping(data["status_weights"])
            if isinstance(weights, dict):
                weights = {k: _copy_mapping(v) for k, v in weights.items()}
            kwargs["status_weights"] = weights
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "GenerationConfig":
        """Load a config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError([f"{path}: top level must be a mapping"])
        return cls.from_dict(data)
