import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import aiohttp
from pydantic import ValidationError

from core.config import settings
from features.common.models.reading_types import Location, Provenance, Reading
from features.common.exceptions.source_exceptions import StoreError
from features.forecast.models.forecast_types import SardinePopulationEstimate

logger = logging.getLogger(__name__)

class ReadingStore(Protocol):
    """Persistence backend for one table of timestamped rows."""

    async def insert(self, rows: List[Dict[str, Any]]) -> None: ...

    async def select(self, since: datetime, limit: Optional[int]) -> List[Dict[str, Any]]: ...

    async def close(self) -> None: ...

# Columns of the oceanographic_readings table; other Reading fields are not persisted
READING_COLUMNS = (
    "timestamp",
    "temperature",
    "salinity",
    "current_speed",
    "current_direction",
    "wave_height",
    "wind_speed",
    "wind_direction",
    "depth",
    "location",
)

def _site_location(location: Optional[Location]) -> Dict[str, Any]:
    return {
        "lat": location.lat if location else settings.site["lat"],
        "lng": location.lng if location else settings.site["lng"],
        "name": location.name if location else settings.site["name"],
    }

def reading_to_row(reading: Reading) -> Dict[str, Any]:
    """Flatten a reading into an oceanographic_readings row."""
    data = reading.model_dump(mode="json", include=set(READING_COLUMNS))
    row = {column: data.get(column) for column in READING_COLUMNS}
    row["depth"] = reading.depth if reading.depth is not None else settings.site["depth"]
    row["location"] = {**_site_location(reading.location), "source": reading.source.value}
    return row

def estimate_to_row(estimate: SardinePopulationEstimate) -> Dict[str, Any]:
    """Flatten a sardine estimate into a sardine_data row."""
    row = estimate.model_dump(
        mode="json",
        include={"timestamp", "population_estimate", "density", "reproduction_rate", "migration_pattern"}
    )
    row["location"] = {**_site_location(None), "area": estimate.area}
    return row

def row_to_reading(row: Dict[str, Any]) -> Optional[Reading]:
    """Rebuild a reading from a stored row, None if the row is unusable."""
    location = row.get("location") or {}
    source = row.get("source") or location.get("source") or Provenance.TIDE_STATION.value
    fields = {field: row.get(field) for field in Reading.MEASUREMENT_FIELDS}
    try:
        reading = Reading(
            timestamp=row["timestamp"],
            source=Provenance(source),
            location=Location(
                lat=location["lat"],
                lng=location["lng"],
                name=location.get("name", settings.site["name"])
            ) if "lat" in location and "lng" in location else None,
            **fields
        )
    except (KeyError, ValueError, ValidationError) as e:
        logger.debug(f"Skipping unreadable history row: {e}")
        return None
    return reading if reading.is_valid() else None

class RestReadingStore:
    """PostgREST-style table endpoint reached over HTTP."""

    def __init__(
        self,
        base_url: str,
        table: str = settings.store_table,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = settings.request_timeout
    ):
        self.url = f"{base_url.rstrip('/')}/{table}"
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def insert(self, rows: List[Dict[str, Any]]) -> None:
        session = await self._init_session()
        try:
            async with session.post(
                self.url,
                json=rows,
                headers={"Prefer": "return=minimal"}
            ) as response:
                response.raise_for_status()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise StoreError(f"Insert into {self.url} failed: {e}") from e

    async def select(self, since: datetime, limit: Optional[int]) -> List[Dict[str, Any]]:
        params = {
            "select": "*",
            "timestamp": f"gte.{since.isoformat()}",
            "order": "timestamp.desc"
        }
        if limit is not None:
            params["limit"] = str(limit)

        session = await self._init_session()
        try:
            async with session.get(self.url, params=params) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise StoreError(f"Query against {self.url} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"Invalid JSON from {self.url}: {e}") from e

        if not isinstance(data, list):
            raise StoreError(f"Unexpected response shape from {self.url}")
        return data

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

def _row_time(row: Dict[str, Any]) -> datetime:
    value = row["timestamp"]
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))

class InMemoryReadingStore:
    """List-backed store for local runs without a database."""

    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    async def insert(self, rows: List[Dict[str, Any]]) -> None:
        async with self._lock:
            self.rows.extend(rows)

    async def select(self, since: datetime, limit: Optional[int]) -> List[Dict[str, Any]]:
        async with self._lock:
            matching = [
                row for row in self.rows
                if _row_time(row) >= since
            ]
        matching.sort(key=_row_time, reverse=True)
        return matching[:limit] if limit is not None else matching

    async def close(self) -> None:
        return None
