"""Shared test fixtures for spheretiles."""

import pytest

from spheretiles.abrate import AbrateTessellation
from spheretiles.config import TessellationConfig
from spheretiles.fibonacci import FibonacciSphere


@pytest.fixture
def abrate_small():
    """A coarse spiral tessellation (~500 tiles)."""
    return AbrateTessellation.from_num_tiles(500)


@pytest.fixture
def abrate_5k():
    return AbrateTessellation.from_num_tiles(5000)


@pytest.fixture
def abrate_10k():
    return AbrateTessellation.from_num_tiles(10000)


@pytest.fixture
def fibonacci_1k():
    return FibonacciSphere(1000)


@pytest.fixture
def sample_config():
    return TessellationConfig(scheme="abrate", num_tiles=1000)
