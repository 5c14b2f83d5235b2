from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class WeatherCondition(str, Enum):
    """Condition labels derived from station meteorology."""
    FOG = "Fog"
    LIGHT_RAIN = "Light Rain"
    OVERCAST = "Overcast"
    CLOUDY = "Cloudy"
    PARTLY_CLOUDY = "Partly Cloudy"
    CLEAR = "Clear"

    @classmethod
    def classify(
        cls,
        humidity: Optional[float],
        pressure: Optional[float],
        visibility: Optional[float]
    ) -> "WeatherCondition":
        """Pick a label from visibility (km), humidity (%) and pressure (hPa)."""
        if visibility is not None and visibility < 1:
            return cls.FOG
        if humidity is not None and humidity >= 95 and pressure is not None and pressure < 1005:
            return cls.LIGHT_RAIN
        if humidity is not None and humidity >= 90:
            return cls.OVERCAST
        if humidity is not None and humidity >= 80:
            return cls.CLOUDY
        if (humidity is not None and humidity >= 70) or (pressure is not None and pressure < 1010):
            return cls.PARTLY_CLOUDY
        return cls.CLEAR

class WeatherSnapshot(BaseModel):
    """Current surface weather at the monitoring site."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    air_temperature: Optional[float] = Field(None, description="Air temperature in Celsius")
    humidity: Optional[float] = Field(None, description="Relative humidity in percent")
    pressure: Optional[float] = Field(None, description="Barometric pressure in hPa")
    visibility: Optional[float] = Field(None, description="Visibility in km")
    conditions: WeatherCondition
    degraded: bool = False
