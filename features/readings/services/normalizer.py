import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from core.config import settings
from features.common.models.reading_types import Location, Reading

logger = logging.getLogger(__name__)

DIRECTION_FIELDS = ("current_direction", "wind_direction")
NON_NEGATIVE_FIELDS = ("current_speed", "wind_speed", "wave_height", "visibility", "salinity", "depth")

class ReadingNormalizer:
    """Merge adapter output from one fetch round into canonical readings."""

    def __init__(self, bucket_minutes: int = settings.bucket_minutes):
        self.bucket = timedelta(minutes=bucket_minutes)

    def validate_field(self, field: str, value: Optional[float]) -> Optional[float]:
        """Return value if it is physically plausible for field, else None."""
        if value is None:
            return None
        if not math.isfinite(value):
            return None
        if field in DIRECTION_FIELDS and not 0 <= value < 360:
            return None
        if field in NON_NEGATIVE_FIELDS and value < 0:
            return None
        return value

    def _clean(self, reading: Reading) -> Dict[str, float]:
        cleaned = {}
        for field, value in reading.measurements().items():
            valid = self.validate_field(field, value)
            if valid is None:
                logger.debug(f"Dropping invalid {field}={value} from {reading.source.value} sample")
                continue
            cleaned[field] = valid
        return cleaned

    def _bucket_key(self, timestamp: datetime) -> datetime:
        epoch = datetime(1970, 1, 1, tzinfo=timestamp.tzinfo)
        offset = (timestamp - epoch) // self.bucket
        return epoch + offset * self.bucket

    def _collapse(self, samples: List[Reading], location: Optional[Location] = None) -> Optional[Reading]:
        """Fold samples into one reading, later samples overriding earlier fields."""
        fields: Dict[str, float] = {}
        latest: Optional[Reading] = None
        for sample in sorted(samples, key=lambda r: r.timestamp):
            cleaned = self._clean(sample)
            if not cleaned:
                continue
            fields.update(cleaned)
            latest = sample

        if latest is None:
            return None
        return Reading(
            timestamp=latest.timestamp,
            source=latest.source,
            location=location or latest.location,
            **fields
        )

    def merge(self, samples: Iterable[Reading]) -> List[Reading]:
        """Group samples into time buckets, oldest first."""
        buckets: Dict[datetime, List[Reading]] = {}
        for sample in samples:
            buckets.setdefault(self._bucket_key(sample.timestamp), []).append(sample)

        merged = []
        for key in sorted(buckets):
            reading = self._collapse(buckets[key])
            if reading is not None:
                merged.append(reading)
        return merged

    def latest(
        self,
        samples: Iterable[Reading],
        location: Optional[Location] = None,
        depth: Optional[float] = None
    ) -> Optional[Reading]:
        """Reading for the newest time bucket of a fetch round.

        Fields are taken from the newest bucket holding valid data and the
        bucket just before it, so a field last reported hours earlier stays
        absent instead of being stamped with the newest timestamp.
        """
        usable = [sample for sample in samples if self._clean(sample)]
        if not usable:
            return None
        newest = max(self._bucket_key(sample.timestamp) for sample in usable)
        window = [
            sample for sample in usable
            if self._bucket_key(sample.timestamp) >= newest - self.bucket
        ]
        reading = self._collapse(window, location)
        if reading is None:
            return None
        if depth is not None and reading.depth is None:
            reading = reading.model_copy(update={"depth": depth})
        return reading

    @staticmethod
    def field_sources(samples: Iterable[Reading]) -> Dict[str, Tuple[str, datetime]]:
        """Which source last reported each field, for diagnostics."""
        sources: Dict[str, Tuple[str, datetime]] = {}
        for sample in sorted(samples, key=lambda r: r.timestamp):
            for field in sample.measurements():
                sources[field] = (sample.source.value, sample.timestamp)
        return sources
