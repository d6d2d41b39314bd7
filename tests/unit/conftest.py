import os
from typing import Generator

import pytest

from geogate.models.policy import Policy
from tests.unit.mocks.mock_geoip_service import MockGeoIPService


@pytest.fixture(scope="session", autouse=True)
def _load_test_env() -> Generator[None, None, None]:
    """Keep logging local: never ship test logs to Loki."""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOKI_ENABLED"] = "false"
    yield


@pytest.fixture
def geoip_service() -> MockGeoIPService:
    return MockGeoIPService()


@pytest.fixture
def scenario_policy() -> Policy:
    return Policy.from_options(
        countries=["India", "United States"],
        cities=["Mumbai", "New York"],
        coordinates=[{"lat": 35.6897, "lon": 139.6895}],  # Tokyo
        geofences=[{"lat": 51.5074, "lon": -0.1278, "radius_km": 50}],  # London, UK
    )
