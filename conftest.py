import random

import pytest

from backend.store import init_storage
from dreadhall.models import PlayerProfile


@pytest.fixture
def storage(tmp_path):
    """Fresh Storage under a per-test temp directory."""
    return init_storage(tmp_path / "data")


@pytest.fixture
def profile():
    return PlayerProfile()


@pytest.fixture
def rng():
    """Seeded RNG so probabilistic tests are repeatable."""
    return random.Random(1234)


class _QuietRandom(random.Random):
    """Every probability roll misses."""

    def random(self) -> float:
        return 0.99


@pytest.fixture
def quiet_rng():
    return _QuietRandom(0)
