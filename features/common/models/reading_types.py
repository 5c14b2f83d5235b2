from datetime import datetime
from enum import Enum
from typing import Optional, ClassVar, Tuple
from pydantic import BaseModel, ConfigDict

class Provenance(str, Enum):
    """Which upstream produced a reading."""
    TIDE_STATION = "tide-station"
    BUOY = "buoy"
    METEOROLOGICAL = "meteorological"
    LOCAL_FALLBACK = "local-fallback"

class Location(BaseModel):
    """Geographic point with a human name."""
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    name: str

class Reading(BaseModel):
    """Canonical oceanographic telemetry point.

    Every measurement is optional because the feeds report disjoint
    subsets; a reading is only valid with at least one of them set.
    """
    model_config = ConfigDict(frozen=True)

    MEASUREMENT_FIELDS: ClassVar[Tuple[str, ...]] = (
        "temperature",
        "salinity",
        "current_speed",
        "current_direction",
        "wave_height",
        "water_level",
        "wind_speed",
        "wind_direction",
        "pressure",
        "visibility",
        "depth",
    )

    timestamp: datetime
    source: Provenance
    temperature: Optional[float] = None  # Celsius
    salinity: Optional[float] = None  # PSU
    current_speed: Optional[float] = None  # m/s
    current_direction: Optional[float] = None  # degrees
    wave_height: Optional[float] = None  # meters
    water_level: Optional[float] = None  # meters above MLLW
    wind_speed: Optional[float] = None  # m/s
    wind_direction: Optional[float] = None  # degrees
    pressure: Optional[float] = None  # hPa
    visibility: Optional[float] = None  # km
    depth: Optional[float] = None  # meters
    location: Optional[Location] = None

    @property
    def degraded(self) -> bool:
        """True when the reading was synthesized rather than observed."""
        return self.source == Provenance.LOCAL_FALLBACK

    def measurements(self) -> dict:
        """Measurement fields that carry a value."""
        return {
            field: getattr(self, field)
            for field in self.MEASUREMENT_FIELDS
            if getattr(self, field) is not None
        }

    def is_valid(self) -> bool:
        return bool(self.measurements())

class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

class ConnectionStatus(BaseModel):
    """Connectivity of the live feeds as seen by consumers."""
    state: ConnectionState
    last_update: Optional[datetime] = None
    seconds_since_update: Optional[float] = None

class RefreshResult(BaseModel):
    """Outcome of a manual refresh."""
    success: bool
    refreshed_at: datetime
    degraded_sections: list[str] = []

class FieldQuality(str, Enum):
    GOOD = "good"
    POOR = "poor"

class OverallQuality(str, Enum):
    GOOD = "good"
    DEGRADED = "degraded"

class DataQuality(BaseModel):
    """Dashboard quality summary of the current conditions."""
    temperature: FieldQuality
    currents: FieldQuality
    overall: OverallQuality

    @classmethod
    def assess(cls, reading: Optional[Reading], connected: bool) -> "DataQuality":
        def rate(value: Optional[float]) -> FieldQuality:
            return FieldQuality.GOOD if value is not None else FieldQuality.POOR

        live = reading is not None and not reading.degraded
        return cls(
            temperature=rate(reading.temperature if reading else None),
            currents=rate(reading.current_speed if reading else None),
            overall=OverallQuality.GOOD if connected and live else OverallQuality.DEGRADED
        )
