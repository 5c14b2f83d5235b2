from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict

class AnomalyType(str, Enum):
    TEMPERATURE = "temperature"
    CURRENT = "current"
    WAVE = "wave"

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class Comparison(str, Enum):
    ABOVE = "above"
    BELOW = "below"

    def breached(self, value: float, threshold: float) -> bool:
        if self == Comparison.ABOVE:
            return value > threshold
        return value < threshold

class Anomaly(BaseModel):
    """Out-of-range condition flagged on a reading."""
    model_config = ConfigDict(frozen=True)

    type: AnomalyType
    severity: Severity
    description: str
    timestamp: datetime
    station_id: Optional[str] = None
