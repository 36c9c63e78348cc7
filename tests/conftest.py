"""
Pytest fixtures for business graph tests.

Provides:
- In-memory Data API backend
- Fixed clock and seeded random generator
- Field synthesizer, entity factory and empty run context
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from biz_graph.api.memory import InMemoryDataAPI
from biz_graph.context import GenerationRun
from biz_graph.factory import EntityFactory
from biz_graph.sampling.fields import FieldSynthesizer

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def api() -> InMemoryDataAPI:
    """Fresh in-memory backend."""
    return InMemoryDataAPI()


@pytest.fixture
def clock():
    """Clock pinned to FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def fields(rng) -> FieldSynthesizer:
    return FieldSynthesizer(rng=rng)


@pytest.fixture
def factory(api, fields, clock) -> EntityFactory:
    return EntityFactory(api, fields, clock=clock)


@pytest.fixture
def run() -> GenerationRun:
    return GenerationRun()
