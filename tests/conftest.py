"""
Shared fixtures and builders for the flood-zone engine tests
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from backend.bilahujan.locations import region_for_state
from backend.bilahujan.schemas import (
    FloodZone,
    LiveWeatherReading,
    Provenance,
    TownWeatherReading,
    VisionAssessment,
)
from backend.bilahujan.zone_factory import create_zone
from backend.bilahujan.zone_store import ZoneStore

FIXED_NOW = datetime(2025, 12, 1, 8, 0, tzinfo=timezone.utc)


def make_zone(zone_id: str, name: str, state: str = "Selangor", severity: int = 0,
              provenance: Provenance = Provenance.SEED, lat: float = 3.0, lng: float = 101.5,
              now: datetime = FIXED_NOW, **kwargs) -> FloodZone:
    """create_zone with test-friendly defaults"""
    return create_zone(
        zone_id, name, kwargs.pop("specific_location", name), state, region_for_state(state),
        lat, lng, severity, kwargs.pop("forecast", f"{name} forecast"),
        sources=kwargs.pop("sources", ["Weather API"]),
        provenance=provenance, now=now, **kwargs,
    )


class FakeWeather:
    """In-process stand-in for the live-weather classifier"""

    def __init__(self, readings: Optional[Dict[str, LiveWeatherReading]] = None,
                 towns: Optional[Dict[str, List[TownWeatherReading]]] = None,
                 delay: float = 0.0, fail=()):
        self.readings = readings or {}
        self.towns = towns or {}
        self.delay = delay
        self.fail = set(fail)
        self.calls: List[str] = []

    async def fetch_state(self, state: str) -> LiveWeatherReading:
        self.calls.append(state)
        if state in self.fail:
            raise RuntimeError("quota exceeded")
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.readings.get(state) or LiveWeatherReading(state=state, weather_condition="Sunny", severity=2)

    async def fetch_towns(self, state: str) -> List[TownWeatherReading]:
        if state in self.fail:
            raise RuntimeError("quota exceeded")
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.towns.get(state, [])


class FakeVision:
    def __init__(self, assessment: Optional[VisionAssessment] = None, delay: float = 0.0, fail: bool = False):
        self.assessment = assessment or VisionAssessment(risk_score=7, directive="Knee-deep water. Avoid the area.")
        self.delay = delay
        self.fail = fail

    async def analyze(self, image: bytes) -> VisionAssessment:
        if self.fail:
            raise RuntimeError("vision model unavailable")
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.assessment


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def empty_store():
    """Store with no seed localities"""
    return ZoneStore(seed_factory=dict)


@pytest.fixture
def seeded_store():
    return ZoneStore()
