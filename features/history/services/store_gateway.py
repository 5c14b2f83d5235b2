import logging
from datetime import datetime
from typing import List, Optional

from core.clock import utc_now
from features.common.models.reading_types import Reading
from features.common.exceptions.source_exceptions import StoreError
from features.common.services.synthetic_data import SyntheticDataGenerator
from features.forecast.models.forecast_types import SardinePopulationEstimate
from features.history.services.reading_store import (
    ReadingStore,
    estimate_to_row,
    reading_to_row,
    row_to_reading
)

logger = logging.getLogger(__name__)

class HistoricalStoreGateway:
    """Append and range-query boundary around the reading store.

    The store is the only source of historical truth. Writes report
    failure through their return value and reads fall back to a
    synthetic series, so callers never see a store exception. Sardine
    estimates go to their own table when an estimate store is given.
    """

    def __init__(
        self,
        store: ReadingStore,
        synthetic: Optional[SyntheticDataGenerator] = None,
        estimate_store: Optional[ReadingStore] = None
    ):
        self.store = store
        self.synthetic = synthetic or SyntheticDataGenerator()
        self.estimate_store = estimate_store

    async def append(self, reading: Reading) -> bool:
        """Persist one reading. Returns False (and logs) on failure."""
        try:
            await self.store.insert([reading_to_row(reading)])
            logger.debug(f"Stored {reading.source.value} reading at {reading.timestamp.isoformat()}")
            return True
        except Exception as e:
            logger.error(f"Error storing reading at {reading.timestamp.isoformat()}: {str(e)}")
            return False

    async def append_estimate(self, estimate: SardinePopulationEstimate) -> bool:
        """Persist one sardine estimate. Returns False (and logs) on failure."""
        if self.estimate_store is None:
            return False
        try:
            await self.estimate_store.insert([estimate_to_row(estimate)])
            logger.debug(f"Stored sardine estimate at {estimate.timestamp.isoformat()}")
            return True
        except Exception as e:
            logger.error(f"Error storing sardine estimate: {str(e)}")
            return False

    async def query_strict(self, since: datetime, limit: Optional[int] = None) -> List[Reading]:
        """Readings newer than since, most recent first. Raises StoreError."""
        try:
            rows = await self.store.select(since, limit)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"History query failed: {e}") from e

        readings = [reading for reading in map(row_to_reading, rows) if reading is not None]
        readings.sort(key=lambda r: r.timestamp, reverse=True)
        return readings

    async def query(
        self,
        since: datetime,
        limit: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[Reading]:
        """Readings newer than since, or a synthetic hourly series if the store fails."""
        try:
            return await self.query_strict(since, limit)
        except StoreError as e:
            now = now or utc_now()
            days = max(1, round((now - since).total_seconds() / 86400))
            logger.warning(f"History store unavailable, serving {days} days of synthetic data: {str(e)}")
            return self.synthetic.history(days, now=now)

    async def close(self) -> None:
        await self.store.close()
        if self.estimate_store is not None:
            await self.estimate_store.close()
