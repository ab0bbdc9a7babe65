"""Shared fixtures for capacity watch tests."""

from datetime import datetime, timedelta, timezone

import pytest

from capacity_watch.config import Settings
from capacity_watch.models.types import ResourceType


class FakeClock:
    """Controllable replacement for datetime.now(timezone.utc)."""

    def __init__(self, start: datetime = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resource_types():
    return [
        ResourceType(id="L40S", size_slug="gpu-l40sx1-48gb"),
        ResourceType(id="H100-1X", size_slug="gpu-h100x1-80gb", default_image="gpu-h100x1-base"),
        ResourceType(id="H100-8X", size_slug="gpu-h100x8-640gb", default_image="gpu-h100x8-base"),
    ]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        do_api_token="test-token",
        probe_delay_seconds=0,
        regions_to_check=["nyc1", "fra1"],
    )


def capacity_payload(**regions: str) -> dict:
    """Build a provider response, e.g. capacity_payload(nyc1="HIGH")."""
    return {"capacities": [{"region": region, "capacity": level} for region, level in regions.items()]}
