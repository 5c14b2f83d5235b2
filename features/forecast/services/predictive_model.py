import logging
import math
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from core.config import settings
from features.common.models.reading_types import Reading
from features.forecast.models.forecast_types import Forecast, ForecastKind, ForecastPoint

logger = logging.getLogger(__name__)

class Season(Enum):
    """Sardine activity by season as (months, population factor)."""
    SPRING = ((4, 5, 6), 1.2)  # High activity
    SUMMER = ((7, 8, 9), 0.9)  # Migration
    FALL = ((10, 11, 12), 1.1)  # Return migration
    WINTER = ((1, 2, 3), 0.8)  # Lower activity

    @classmethod
    def from_month(cls, month: int) -> "Season":
        for season in cls:
            months, _ = season.value
            if month in months:
                return season
        return cls.WINTER

    @property
    def factor(self) -> float:
        return self.value[1]

class PredictiveModel:
    """Statistical forecasts from a trailing window of readings.

    The population forecast is a seasonal heuristic: a trend multiplier
    built from whether mean temperature and current speed sit in the
    optimal band, scaled by a seasonal factor and ramped linearly over
    the horizon. Temperature and current forecasts extrapolate a
    least-squares trend of the window.
    """

    BASE_POPULATION = 2_300_000
    OPTIMAL_TEMPERATURE = (16.0, 20.0)  # Celsius
    OPTIMAL_CURRENT = (1.5, 3.0)  # m/s
    TEMPERATURE_BONUS = 0.15
    CURRENT_BONUS = 0.10
    POPULATION_RAMP = ((24, 0.95), (48, 1.0), (72, 1.05))
    HORIZONS = (24, 48, 72)
    MIN_CONFIDENCE = 0.5
    MAX_CONFIDENCE = 0.95
    FALLBACK_CONFIDENCE = 0.6
    RECENT_SAMPLES = 24
    MAX_SLOPE = {
        ForecastKind.TEMPERATURE: 0.05,  # Celsius per hour
        ForecastKind.CURRENT: 0.02,  # m/s per hour
    }
    FALLBACK_VALUE = {
        ForecastKind.TEMPERATURE: 18.2,
        ForecastKind.CURRENT: 2.1,
    }
    FIELDS = {
        ForecastKind.TEMPERATURE: "temperature",
        ForecastKind.CURRENT: "current_speed",
    }

    def __init__(self, window_days: int = settings.forecast_window_days):
        self.window_days = window_days

    @property
    def expected_samples(self) -> int:
        return self.window_days * 24

    @staticmethod
    def mean(readings: Sequence[Reading], field: str) -> Optional[float]:
        """Mean of field over readings that report it."""
        values = [getattr(r, field) for r in readings if getattr(r, field) is not None]
        if not values:
            return None
        return float(np.mean(values))

    @staticmethod
    def _in_band(value: Optional[float], band) -> bool:
        return value is not None and band[0] <= value <= band[1]

    def trend_multiplier(
        self,
        mean_temperature: Optional[float],
        mean_current: Optional[float],
        month: int
    ) -> float:
        trend = 1.0
        if self._in_band(mean_temperature, self.OPTIMAL_TEMPERATURE):
            trend += self.TEMPERATURE_BONUS
        if self._in_band(mean_current, self.OPTIMAL_CURRENT):
            trend += self.CURRENT_BONUS
        return trend * Season.from_month(month).factor

    def confidence(self, readings: Sequence[Reading], fields: Sequence[str]) -> float:
        """0.2 + 0.8 x completeness x coverage, clamped to [0.5, 0.95]."""
        if not readings:
            return self.MIN_CONFIDENCE
        coverage = min(1.0, len(readings) / self.expected_samples)
        complete = sum(
            1 for r in readings
            if all(getattr(r, field) is not None for field in fields)
        )
        completeness = complete / len(readings)
        raw = 0.2 + 0.8 * completeness * coverage
        return min(self.MAX_CONFIDENCE, max(self.MIN_CONFIDENCE, raw))

    def forecast_population(self, readings: Sequence[Reading], now: datetime) -> Forecast:
        mean_temperature = self.mean(readings, "temperature")
        mean_current = self.mean(readings, "current_speed")
        trend = self.trend_multiplier(mean_temperature, mean_current, now.month)
        predicted = math.floor(self.BASE_POPULATION * trend)

        logger.info(
            f"Population model: {len(readings)} samples, mean temp {mean_temperature}, "
            f"mean current {mean_current}, month {now.month}, trend {trend:.3f}"
        )

        return Forecast(
            kind=ForecastKind.POPULATION,
            confidence=self.confidence(readings, ("temperature", "current_speed")),
            horizon_hours=self.POPULATION_RAMP[-1][0],
            points=[
                ForecastPoint(hours=hours, value=predicted * ratio)
                for hours, ratio in self.POPULATION_RAMP
            ],
            trend=trend
        )

    def forecast_series(self, kind: ForecastKind, readings: Sequence[Reading], now: datetime) -> Forecast:
        """Linear-trend forecast of temperature or current speed."""
        if kind == ForecastKind.POPULATION:
            return self.forecast_population(readings, now)

        field = self.FIELDS[kind]
        samples = sorted(
            (r for r in readings if getattr(r, field) is not None),
            key=lambda r: r.timestamp
        )
        if not samples:
            logger.warning(f"No {field} samples in window, using fallback {kind.value} forecast")
            return self.fallback(kind)

        hours = np.array([(r.timestamp - now).total_seconds() / 3600 for r in samples])
        values = np.array([getattr(r, field) for r in samples])

        slope = 0.0
        if len(samples) >= 2 and np.ptp(hours) > 0:
            slope = float(np.polyfit(hours, values, 1)[0])
        limit = self.MAX_SLOPE[kind]
        slope = max(-limit, min(limit, slope))

        anchor = float(np.mean(values[-self.RECENT_SAMPLES:]))
        return Forecast(
            kind=kind,
            confidence=self.confidence(readings, (field,)),
            horizon_hours=self.HORIZONS[-1],
            points=[
                ForecastPoint(hours=h, value=round(anchor + slope * h, 3))
                for h in self.HORIZONS
            ]
        )

    def fallback(self, kind: ForecastKind) -> Forecast:
        """Fixed forecast used when history is unavailable."""
        if kind == ForecastKind.POPULATION:
            points = [
                ForecastPoint(hours=24, value=2_200_000),
                ForecastPoint(hours=48, value=2_300_000),
                ForecastPoint(hours=72, value=2_400_000),
            ]
        else:
            value = self.FALLBACK_VALUE[kind]
            points = [ForecastPoint(hours=h, value=value) for h in self.HORIZONS]
        return Forecast(
            kind=kind,
            confidence=self.FALLBACK_CONFIDENCE,
            horizon_hours=72,
            points=points,
            fallback=True
        )

def apply_horizon_decay(forecast: Forecast, decay: float = 0.97) -> Forecast:
    """Attach per-point confidence that shrinks with each day of horizon."""
    points: List[ForecastPoint] = [
        point.model_copy(update={
            "confidence": round(forecast.confidence * decay ** (point.hours / 24), 4)
        })
        for point in forecast.points
    ]
    return forecast.model_copy(update={"points": points})
