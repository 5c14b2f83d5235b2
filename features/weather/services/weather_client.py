import asyncio
import logging
from typing import Any, Dict, List, Optional

from core.config import settings
from features.common.exceptions.source_exceptions import SourceError
from features.common.utils.conversions import UnitConversions
from features.sources.services.coops_client import CoopsClient
from features.weather.models.weather_types import WeatherCondition, WeatherSnapshot

logger = logging.getLogger(__name__)

# CO-OPS product -> WeatherSnapshot field
PRODUCT_FIELDS: Dict[str, str] = {
    "air_temperature": "air_temperature",
    "humidity": "humidity",
    "air_pressure": "pressure",
    "visibility": "visibility",
}

class CoopsWeatherClient(CoopsClient):
    """Surface weather from the CO-OPS meteorological products of a station."""

    name = "weather"

    def __init__(self, products: Optional[List[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.products = products or list(settings.coops_weather_products)

    async def fetch_snapshot(self) -> WeatherSnapshot:
        """Latest value of each product. Raises SourceError when every product fails."""
        results = await asyncio.gather(
            *(self.fetch_product(product) for product in self.products),
            return_exceptions=True
        )

        values: Dict[str, float] = {}
        timestamps = []
        failures = 0
        for product, result in zip(self.products, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(f"CO-OPS {product} weather feed failed: {result}")
                failures += 1
                continue
            latest = self._latest_sample(result)
            if latest is None:
                continue
            timestamp, value = latest
            if product == "visibility":
                value = UnitConversions.nautical_miles_to_km(value)
            values[PRODUCT_FIELDS.get(product, product)] = value
            timestamps.append(timestamp)

        if failures == len(self.products):
            raise SourceError(self.name, "all weather feeds failed")
        if not values:
            raise SourceError(self.name, "weather feeds returned no usable samples")

        return WeatherSnapshot(
            timestamp=max(timestamps),
            conditions=WeatherCondition.classify(
                values.get("humidity"),
                values.get("pressure"),
                values.get("visibility")
            ),
            **values
        )

    def _latest_sample(self, samples: List[Any]):
        """Most recent (timestamp, value) pair among well-formed samples."""
        latest = None
        for sample in samples:
            if not isinstance(sample, dict):
                continue
            timestamp = self.parse_time(sample.get("t"))
            value = UnitConversions.parse_float(sample.get("v"))
            if timestamp is None or value is None:
                continue
            if latest is None or timestamp >= latest[0]:
                latest = (timestamp, value)
        return latest
