from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class ForecastKind(str, Enum):
    POPULATION = "population"
    TEMPERATURE = "temperature"
    CURRENT = "current"

class ForecastPoint(BaseModel):
    """Predicted value at an offset from now."""
    model_config = ConfigDict(frozen=True)

    hours: int
    value: float
    confidence: Optional[float] = Field(None, ge=0, le=1)

class Forecast(BaseModel):
    """Short-horizon forecast for one quantity."""
    model_config = ConfigDict(frozen=True)

    kind: ForecastKind
    confidence: float = Field(..., ge=0, le=1)
    horizon_hours: int
    points: List[ForecastPoint]
    trend: Optional[float] = None  # population trend multiplier
    fallback: bool = False

class MigrationDirection(str, Enum):
    NORTH = "north"
    SOUTH = "south"
    STATIONARY = "stationary"

    @classmethod
    def for_month(cls, month: int) -> "MigrationDirection":
        """Seasonal migration for a calendar month (1-12)."""
        if 4 <= month <= 6:
            return cls.NORTH
        if 10 <= month <= 12:
            return cls.SOUTH
        return cls.STATIONARY

class SardinePopulationEstimate(BaseModel):
    """Derived sardine population for the monitoring area."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    population_estimate: int
    density: float = Field(..., description="Biomass density in kg/km²")
    reproduction_rate: float = Field(..., ge=0, le=1)
    migration_pattern: MigrationDirection
    area: str
    confidence: float = Field(..., ge=0, le=1)
