import pytest

from itinero_travel.api import geocoding
from itinero_travel.api.models import Origin, Stop
from itinero_travel.api.services.usage_service import InMemoryUsageStore, UsageTracker


@pytest.fixture
def tokyo_stops():
    return [
        Stop(id="a", name="A", lat=35.68, lng=139.65),
        Stop(id="b", name="B", lat=35.70, lng=139.77),
        Stop(id="c", name="C", lat=35.66, lng=139.70),
        Stop(id="d", name="D", lat=35.71, lng=139.70),
    ]


@pytest.fixture
def hotel():
    return Origin(lat=35.69, lng=139.70, name="Hotel")


@pytest.fixture
def hotel_stops():
    return [
        Stop(id="e", name="E", lat=35.75, lng=139.70),
        Stop(id="f", name="F", lat=35.60, lng=139.70),
    ]


@pytest.fixture
def tracker():
    return UsageTracker(InMemoryUsageStore())


@pytest.fixture(autouse=True)
def fresh_geocoder(monkeypatch):
    """Keep geocoding tests off the network and independent of each other."""
    geocoding.clear_cache()
    monkeypatch.setattr(geocoding, "_gmaps", None)
    yield
    geocoding.clear_cache()
