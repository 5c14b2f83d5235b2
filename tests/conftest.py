"""Shared fixtures: a controllable clock, scripted adapters and stores."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from core.cache import TimedCache
from features.common.exceptions.source_exceptions import (
    FeedUnavailableError,
    StoreError,
)
from features.common.models.reading_types import Provenance, Reading
from features.common.services.synthetic_data import SyntheticDataGenerator
from features.conditions.services.aggregator import OceanDataAggregator
from features.history.services.reading_store import InMemoryReadingStore
from features.history.services.store_gateway import HistoricalStoreGateway
from features.sources.services.base_client import SourceAdapter
from features.weather.models.weather_types import WeatherCondition, WeatherSnapshot

APRIL_NOON = datetime(2024, 4, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Pinned time source for both TTL bookkeeping and UTC instants."""

    def __init__(self, start: datetime = APRIL_NOON) -> None:
        self.current = start

    def monotonic(self) -> float:
        return self.current.timestamp()

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class ScriptedAdapter(SourceAdapter):
    """Adapter that returns canned readings or raises, counting fetches."""

    def __init__(
        self,
        name: str,
        readings: Optional[List[Reading]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.readings = readings or []
        self.error = error
        self.calls = 0

    async def fetch(self) -> List[Reading]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.readings)


class ScriptedWeatherClient:
    def __init__(self, snapshot: Optional[WeatherSnapshot] = None) -> None:
        self.snapshot = snapshot
        self.calls = 0

    async def fetch_snapshot(self) -> WeatherSnapshot:
        self.calls += 1
        if self.snapshot is None:
            raise FeedUnavailableError("weather", "offline")
        return self.snapshot

    async def close(self) -> None:
        return None


class UnreachableStore:
    """Store whose every call fails like a dropped connection."""

    def __init__(self) -> None:
        self.insert_attempts = 0

    async def insert(self, rows):
        self.insert_attempts += 1
        raise StoreError("connection refused")

    async def select(self, since, limit):
        raise StoreError("connection refused")

    async def close(self) -> None:
        return None


def tide_reading(at: datetime, **fields) -> Reading:
    fields.setdefault("current_speed", 2.0)
    fields.setdefault("current_direction", 180.0)
    return Reading(timestamp=at, source=Provenance.TIDE_STATION, **fields)


def buoy_reading(at: datetime, **fields) -> Reading:
    fields.setdefault("temperature", 17.5)
    fields.setdefault("wave_height", 1.4)
    return Reading(timestamp=at, source=Provenance.BUOY, **fields)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def synthetic() -> SyntheticDataGenerator:
    return SyntheticDataGenerator(seed=42)


@pytest.fixture
def memory_store() -> InMemoryReadingStore:
    return InMemoryReadingStore()


@pytest.fixture
def estimate_store() -> InMemoryReadingStore:
    return InMemoryReadingStore()


@pytest.fixture
def weather_snapshot(clock: FakeClock) -> WeatherSnapshot:
    return WeatherSnapshot(
        timestamp=clock.now(),
        air_temperature=21.0,
        humidity=60.0,
        pressure=1015.0,
        visibility=12.0,
        conditions=WeatherCondition.CLEAR,
    )


@pytest.fixture
def make_aggregator(clock: FakeClock, synthetic: SyntheticDataGenerator, memory_store, estimate_store):
    """Factory for isolated aggregators wired to scripted collaborators."""

    def _make(
        adapters: List[SourceAdapter],
        store=None,
        weather: Optional[ScriptedWeatherClient] = None,
    ) -> OceanDataAggregator:
        return OceanDataAggregator(
            adapters=adapters,
            weather_client=weather or ScriptedWeatherClient(),
            gateway=HistoricalStoreGateway(
                store or memory_store,
                synthetic=synthetic,
                estimate_store=estimate_store,
            ),
            synthetic=synthetic,
            cache=TimedCache(clock=clock.monotonic),
            clock=clock.monotonic,
            now=clock.now,
        )

    return _make
