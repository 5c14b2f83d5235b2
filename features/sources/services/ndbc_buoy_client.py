import logging
from datetime import datetime, timezone
from typing import List, Optional

from core.config import settings
from features.common.models.reading_types import Provenance, Reading
from features.common.exceptions.source_exceptions import MalformedPayloadError
from features.common.utils.conversions import UnitConversions
from features.sources.services.base_client import SourceAdapter

logger = logging.getLogger(__name__)

class NDBCBuoyAdapter(SourceAdapter):
    """Standard meteorological text feed from an NDBC buoy.

    Column layout of realtime2 ``<id>.txt``:

        0-4: YY MM DD hh mm (UTC)
        5: WDIR - Wind direction (degrees clockwise from true N)
        6: WSPD - Wind speed (m/s)
        7: GST - Gust speed (m/s)
        8: WVHT - Significant wave height (meters)
        9: DPD, 10: APD, 11: MWD
        12: PRES - Sea level pressure (hPa)
        13: ATMP - Air temperature (Celsius)
        14: WTMP - Sea surface temperature (Celsius)
        15: DEWP
        16: VIS - Visibility (nautical miles)
        17: PTDY, 18: TIDE
    """

    name = "buoy"
    provenance = Provenance.BUOY

    HEADER_LINES = 2
    WIND_DIRECTION = 5
    WIND_SPEED = 6
    WAVE_HEIGHT = 8
    PRESSURE = 12
    WATER_TEMP = 14
    VISIBILITY = 16

    def __init__(
        self,
        buoy_id: str = settings.buoy_id,
        base_url: str = settings.ndbc_base_url,
        row_limit: int = settings.buoy_row_limit,
        min_columns: int = settings.buoy_min_columns,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.buoy_id = buoy_id
        self.base_url = base_url
        self.row_limit = row_limit
        self.min_columns = min_columns

    async def fetch(self) -> List[Reading]:
        url = f"{self.base_url}{self.buoy_id}.txt"
        text = await self._get_text(url)
        if not text or not text.strip():
            raise MalformedPayloadError(self.name, f"empty feed for buoy {self.buoy_id}")
        readings = self.parse(text)
        logger.debug(f"Parsed {len(readings)} rows for buoy {self.buoy_id}")
        return readings

    def parse(self, text: str) -> List[Reading]:
        """Parse feed text into readings, skipping short or undated rows."""
        lines = text.split('\n')
        rows = lines[self.HEADER_LINES:self.HEADER_LINES + self.row_limit]

        readings = []
        for line in rows:
            parts = line.split()
            if len(parts) < self.min_columns:
                if parts:
                    logger.debug(f"Skipping short buoy row ({len(parts)} columns): {line!r}")
                continue

            timestamp = self._parse_timestamp(parts[:5])
            if timestamp is None:
                logger.debug(f"Skipping buoy row with bad timestamp: {line!r}")
                continue

            reading = Reading(
                timestamp=timestamp,
                source=self.provenance,
                wind_direction=self._value(parts, self.WIND_DIRECTION),
                wind_speed=self._value(parts, self.WIND_SPEED),
                wave_height=self._value(parts, self.WAVE_HEIGHT),
                pressure=self._value(parts, self.PRESSURE),
                temperature=self._value(parts, self.WATER_TEMP),
                visibility=UnitConversions.nautical_miles_to_km(
                    self._value(parts, self.VISIBILITY)
                )
            )
            if reading.is_valid():
                readings.append(reading)

        return readings

    def _value(self, parts: List[str], index: int) -> Optional[float]:
        """Column value, None when the column is missing or holds 'MM'."""
        if index >= len(parts):
            return None
        return UnitConversions.parse_float(parts[index])

    def _parse_timestamp(self, time_data: List[str]) -> Optional[datetime]:
        try:
            return datetime(
                year=int(time_data[0]),
                month=int(time_data[1]),
                day=int(time_data[2]),
                hour=int(time_data[3]),
                minute=int(time_data[4]),
                tzinfo=timezone.utc
            )
        except (ValueError, IndexError):
            return None
