from dataclasses import dataclass
from typing import List, Optional, Sequence

from features.anomalies.models.anomaly_types import Anomaly, AnomalyType, Comparison, Severity
from features.common.models.reading_types import Reading

@dataclass(frozen=True)
class AnomalyRule:
    field: str
    comparison: Comparison
    threshold: float
    type: AnomalyType
    severity: Severity
    description: str

RULES = (
    AnomalyRule("temperature", Comparison.ABOVE, 25.0, AnomalyType.TEMPERATURE, Severity.HIGH,
                "Unusually high water temperature detected"),
    AnomalyRule("temperature", Comparison.BELOW, 12.0, AnomalyType.TEMPERATURE, Severity.MEDIUM,
                "Unusually low water temperature detected"),
    AnomalyRule("current_speed", Comparison.ABOVE, 4.5, AnomalyType.CURRENT, Severity.HIGH,
                "Extremely strong currents detected"),
    AnomalyRule("wave_height", Comparison.ABOVE, 3.5, AnomalyType.WAVE, Severity.MEDIUM,
                "High wave conditions detected"),
)

def evaluate(reading: Reading, station_id: Optional[str] = None) -> List[Anomaly]:
    """Apply every rule to one reading. Absent fields never match."""
    anomalies = []
    for rule in RULES:
        value = getattr(reading, rule.field, None)
        if value is None or not rule.comparison.breached(value, rule.threshold):
            continue
        anomalies.append(Anomaly(
            type=rule.type,
            severity=rule.severity,
            description=rule.description,
            timestamp=reading.timestamp,
            station_id=station_id
        ))
    return anomalies

def detect_anomalies(readings: Sequence[Reading], station_id: Optional[str] = None) -> List[Anomaly]:
    """Anomalies on the latest reading of the sequence."""
    if not readings:
        return []
    latest = max(readings, key=lambda r: r.timestamp)
    return evaluate(latest, station_id)
