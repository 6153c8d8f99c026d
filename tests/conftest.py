import pytest

from hn_quality.cache_utils import TimedCache
from factories import NOW, FakeClock


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TimedCache(60.0, clock=clock)
