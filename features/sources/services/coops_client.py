import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.config import settings
from features.common.models.reading_types import Provenance, Reading
from features.common.exceptions.source_exceptions import (
    MalformedPayloadError,
    SourceError
)
from features.common.utils.conversions import UnitConversions
from features.sources.services.base_client import FeedClient, SourceAdapter

logger = logging.getLogger(__name__)

Converter = Optional[Callable[[Optional[float]], Optional[float]]]

# Sample key -> (Reading field, unit conversion) for each CO-OPS product
PRODUCT_FIELDS: Dict[str, Dict[str, Tuple[str, Converter]]] = {
    "water_level": {
        "v": ("water_level", None),
    },
    "currents": {
        "s": ("current_speed", UnitConversions.cms_to_ms),  # cm/s in metric units
        "d": ("current_direction", None),
    },
    "met": {
        "s": ("wind_speed", None),
        "d": ("wind_direction", None),
        "p": ("pressure", None),
        "vis": ("visibility", UnitConversions.nautical_miles_to_km),
    },
}

PRODUCT_PROVENANCE: Dict[str, Provenance] = {
    "water_level": Provenance.TIDE_STATION,
    "currents": Provenance.TIDE_STATION,
    "met": Provenance.METEOROLOGICAL,
}

class CoopsClient(FeedClient):
    """Client for the NOAA CO-OPS data getter."""

    name = "coops"

    def __init__(
        self,
        station_id: str = settings.tide_station_id,
        base_url: str = settings.coops_base_url,
        sample_limit: int = settings.coops_sample_limit,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.station_id = station_id
        self.base_url = base_url
        self.sample_limit = sample_limit

    def _product_params(self, product: str) -> Dict[str, str]:
        params = dict(settings.coops_params)
        params.update({"station": self.station_id, "product": product})
        if product == "water_level":
            params["datum"] = "MLLW"
        return params

    async def fetch_product(self, product: str) -> List[Dict[str, Any]]:
        """Fetch one product for today and return its most recent raw samples."""
        data = await self._get_json(self.base_url, params=self._product_params(product))

        if not isinstance(data, dict):
            raise MalformedPayloadError(self.name, f"{product} response is not an object")
        if "error" in data:
            message = data["error"].get("message", "Unknown error from NOAA API")
            raise MalformedPayloadError(self.name, f"{product}: {message}")

        samples = data.get("data")
        if not isinstance(samples, list):
            raise MalformedPayloadError(self.name, f"{product} response has no data series")

        return samples[-self.sample_limit:]

    @staticmethod
    def parse_time(value: Any) -> Optional[datetime]:
        """Parse a CO-OPS 'YYYY-MM-DD HH:MM' GMT timestamp."""
        if not isinstance(value, str):
            return None
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d %H:%M").replace(tzinfo=timezone.utc)
        except ValueError:
            return None

class TideStationAdapter(CoopsClient, SourceAdapter):
    """Water level, currents and meteorological feeds for one tide station.

    Each product is fetched as its own task; a product that fails only
    loses its own fields. The adapter fails when every product fails.
    """

    name = "tide-station"
    provenance = Provenance.TIDE_STATION

    def __init__(self, products: Optional[List[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.products = products or list(settings.coops_products)

    async def fetch(self) -> List[Reading]:
        results = await asyncio.gather(
            *(self.fetch_product(product) for product in self.products),
            return_exceptions=True
        )

        readings: List[Reading] = []
        errors: List[BaseException] = []
        for product, result in zip(self.products, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(f"CO-OPS {product} feed failed for station {self.station_id}: {result}")
                errors.append(result)
                continue
            product_readings = self._parse_samples(product, result)
            logger.debug(f"CO-OPS {product}: {len(product_readings)} samples for station {self.station_id}")
            readings.extend(product_readings)

        if len(errors) == len(self.products):
            first = errors[0]
            if isinstance(first, SourceError):
                raise first
            raise SourceError(self.name, f"all CO-OPS feeds failed: {first}")

        return readings

    def _parse_samples(self, product: str, samples: List[Any]) -> List[Reading]:
        fields = PRODUCT_FIELDS.get(product, {})
        provenance = PRODUCT_PROVENANCE.get(product, self.provenance)
        readings = []

        for sample in samples:
            if not isinstance(sample, dict):
                logger.debug(f"Dropping non-object {product} sample: {sample!r}")
                continue
            timestamp = self.parse_time(sample.get("t"))
            if timestamp is None:
                logger.debug(f"Dropping {product} sample with bad timestamp: {sample.get('t')!r}")
                continue

            values = {}
            for key, (field, convert) in fields.items():
                value = UnitConversions.parse_float(sample.get(key))
                if value is not None and convert:
                    value = convert(value)
                if value is not None:
                    values[field] = value

            if not values:
                continue
            readings.append(Reading(timestamp=timestamp, source=provenance, **values))

        return readings
