"""Deterministic stand-in data for when every live source is unavailable.

All values are drawn from a seeded ``random.Random`` so degraded scenarios
are reproducible; the series are smooth functions of the site's baseline
conditions so charts never render empty.
"""
import logging
import math
import random
from datetime import datetime, timedelta
from typing import List, Optional

from core.clock import utc_now
from core.config import settings
from features.common.models.reading_types import Location, Provenance, Reading
from features.weather.models.weather_types import WeatherCondition, WeatherSnapshot

logger = logging.getLogger(__name__)

# Baseline conditions for Ensenada Bay
BASE_TEMPERATURE = 18.2
BASE_SALINITY = 34.5
BASE_CURRENT_SPEED = 2.1
BASE_CURRENT_DIRECTION = 225.0
BASE_WAVE_HEIGHT = 1.2
BASE_WIND_SPEED = 8.5
BASE_WIND_DIRECTION = 270.0

BASE_AIR_TEMPERATURE = 22.0
BASE_HUMIDITY = 65.0
BASE_PRESSURE = 1013.0
BASE_VISIBILITY = 10.0

def site_location() -> Location:
    site = settings.site
    return Location(lat=site["lat"], lng=site["lng"], name=site["name"])

class SyntheticDataGenerator:
    """Seeded generator for fallback readings, history and weather."""

    def __init__(self, seed: Optional[int] = settings.fallback_seed):
        self.seed = seed
        self._random = random.Random(seed)
        self.location = site_location()
        self.depth = float(settings.site["depth"])

    def _jitter(self, spread: float) -> float:
        """Uniform noise in [-spread/2, spread/2]."""
        return (self._random.random() - 0.5) * spread

    def reading(self, now: Optional[datetime] = None) -> Reading:
        """Current-conditions stand-in with bounded jitter around the baseline."""
        return Reading(
            timestamp=now or utc_now(),
            source=Provenance.LOCAL_FALLBACK,
            temperature=round(BASE_TEMPERATURE + self._jitter(2), 2),
            salinity=BASE_SALINITY,
            current_speed=round(BASE_CURRENT_SPEED + self._jitter(0.5), 2),
            current_direction=round(BASE_CURRENT_DIRECTION + self._jitter(30), 1),
            wave_height=BASE_WAVE_HEIGHT,
            wind_speed=BASE_WIND_SPEED,
            wind_direction=BASE_WIND_DIRECTION,
            depth=self.depth,
            location=self.location
        )

    def history(self, days: int, now: Optional[datetime] = None) -> List[Reading]:
        """Hourly series covering ``days``, most recent first."""
        now = now or utc_now()
        readings = []
        for i in range(days * 24):
            readings.append(Reading(
                timestamp=now - timedelta(hours=i),
                source=Provenance.LOCAL_FALLBACK,
                temperature=round(18 + math.sin(i * 0.1) * 2 + self._jitter(1), 2),
                current_speed=round(2 + math.sin(i * 0.05) * 0.5 + self._jitter(0.3), 2),
                current_direction=round(BASE_CURRENT_DIRECTION + math.sin(i * 0.02) * 30, 1),
                depth=round(self.depth + self._jitter(50), 1),
                location=self.location
            ))
        logger.info(f"Generated {len(readings)} synthetic hourly readings for {days} days")
        return readings

    def weather(self, now: Optional[datetime] = None) -> WeatherSnapshot:
        humidity = round(BASE_HUMIDITY + self._jitter(20), 1)
        pressure = round(BASE_PRESSURE + self._jitter(20), 1)
        visibility = round(BASE_VISIBILITY + self._jitter(5), 1)
        return WeatherSnapshot(
            timestamp=now or utc_now(),
            air_temperature=round(BASE_AIR_TEMPERATURE + self._jitter(6), 1),
            humidity=humidity,
            pressure=pressure,
            visibility=visibility,
            conditions=WeatherCondition.classify(humidity, pressure, visibility),
            degraded=True
        )
