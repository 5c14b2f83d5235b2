import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from core.cache import TimedCache
from core.clock import Clock, monotonic, utc_now
from core.config import settings
from core.scheduler import RefreshScheduler
from features.anomalies.models.anomaly_types import Anomaly
from features.anomalies.services.anomaly_detector import detect_anomalies
from features.common.models.reading_types import (
    ConnectionState,
    ConnectionStatus,
    DataQuality,
    Reading,
    RefreshResult
)
from features.common.services.synthetic_data import SyntheticDataGenerator
from features.forecast.models.forecast_types import (
    Forecast,
    ForecastKind,
    MigrationDirection,
    SardinePopulationEstimate
)
from features.forecast.services.predictive_model import PredictiveModel, apply_horizon_decay
from features.history.services.reading_store import InMemoryReadingStore, RestReadingStore
from features.history.services.store_gateway import HistoricalStoreGateway
from features.readings.services.normalizer import ReadingNormalizer
from features.sources.services.base_client import SourceAdapter
from features.sources.services.coops_client import TideStationAdapter
from features.sources.services.ndbc_buoy_client import NDBCBuoyAdapter
from features.weather.models.weather_types import WeatherSnapshot
from features.weather.services.weather_client import CoopsWeatherClient

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Tuple[Any, bool]]]

class OceanDataAggregator:
    """Answers the dashboard's read operations from live feeds, cache and history.

    Lifecycle is explicit: construct, ``start()`` to schedule the periodic
    refresh, ``shutdown()`` to stop it and release sessions. Every read
    operation returns a usable value; when live data is unavailable the
    value is synthetic and the connection status reports disconnected.
    """

    BASE_DENSITY = 156.0  # kg/km²
    BASE_REPRODUCTION_RATE = 0.87
    HORIZON_DECAY = 0.97  # confidence retained per day of horizon

    def __init__(
        self,
        adapters: Optional[List[SourceAdapter]] = None,
        weather_client: Optional[CoopsWeatherClient] = None,
        gateway: Optional[HistoricalStoreGateway] = None,
        normalizer: Optional[ReadingNormalizer] = None,
        model: Optional[PredictiveModel] = None,
        synthetic: Optional[SyntheticDataGenerator] = None,
        cache: Optional[TimedCache] = None,
        clock: Clock = monotonic,
        now: Callable[[], datetime] = utc_now,
        staleness_window: int = settings.staleness_window,
        refresh_interval: int = settings.refresh_interval
    ):
        self.synthetic = synthetic or SyntheticDataGenerator()
        self.adapters = adapters if adapters is not None else [TideStationAdapter(), NDBCBuoyAdapter()]
        self.weather_client = weather_client or CoopsWeatherClient()
        self.gateway = gateway or self._default_gateway()
        self.normalizer = normalizer or ReadingNormalizer()
        self.model = model or PredictiveModel()
        self.cache = cache or TimedCache(clock=clock)
        self.now = now
        self.staleness_window = timedelta(seconds=staleness_window)
        self.ttl = settings.get_cache_ttl()
        self.scheduler = RefreshScheduler(self.get_current_conditions, refresh_interval)

        self._inflight: Dict[str, asyncio.Task] = {}
        self._background_tasks: Set[asyncio.Task] = set()
        self._generation = 0
        self._connected = False
        self._last_success: Optional[datetime] = None

        logger.info(
            f"Aggregator initialized with sources {[a.name for a in self.adapters]}, "
            f"base TTL {settings.base_cache_ttl}s, staleness window {staleness_window}s"
        )

    def _default_gateway(self) -> HistoricalStoreGateway:
        if settings.store_url:
            return HistoricalStoreGateway(
                RestReadingStore(settings.store_url, settings.store_table),
                synthetic=self.synthetic,
                estimate_store=RestReadingStore(settings.store_url, settings.sardine_table)
            )
        return HistoricalStoreGateway(
            InMemoryReadingStore(),
            synthetic=self.synthetic,
            estimate_store=InMemoryReadingStore()
        )

    # Lifecycle

    async def start(self) -> None:
        self.scheduler.start()

    async def shutdown(self) -> None:
        """Stop the refresh timer, cancel pending work and close sessions."""
        self.scheduler.shutdown()
        pending = list(self._inflight.values()) + list(self._background_tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._inflight.clear()
        self._background_tasks.clear()

        for adapter in self.adapters:
            await adapter.close()
        await self.weather_client.close()
        await self.gateway.close()
        await self.cache.close()
        logger.info("Aggregator shut down")

    # Cache plumbing

    async def _cached(self, key: str, ttl: int, loader: Loader) -> Any:
        """Serve key from cache, otherwise run loader once for all concurrent callers.

        The load runs in its own task and callers await it through a shield,
        so a caller that gives up does not cancel the fetch; the result still
        lands in the cache for the next caller.
        """
        value = await self.cache.get(key)
        if value is not None:
            return value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._load(key, ttl, loader, self._generation))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        return await asyncio.shield(task)

    async def _load(self, key: str, ttl: int, loader: Loader, generation: int) -> Any:
        value, cacheable = await loader()
        # A refresh since this load started invalidates its result
        if cacheable and generation == self._generation:
            await self.cache.set(key, value, ttl)
        return value

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    # Connection health

    def _record_success(self) -> None:
        self._last_success = self.now()
        if not self._connected:
            logger.info("Live feeds connected")
        self._connected = True

    def _record_failure(self) -> None:
        if self._connected:
            logger.warning("Live feeds disconnected, serving fallback data")
        self._connected = False

    def connection_status(self) -> ConnectionStatus:
        """Connected only if the last update succeeded and is within the staleness window."""
        if self._last_success is None:
            return ConnectionStatus(state=ConnectionState.DISCONNECTED)

        age = self.now() - self._last_success
        connected = self._connected and age <= self.staleness_window
        return ConnectionStatus(
            state=ConnectionState.CONNECTED if connected else ConnectionState.DISCONNECTED,
            last_update=self._last_success,
            seconds_since_update=round(age.total_seconds(), 1)
        )

    async def data_quality(self) -> DataQuality:
        """Good/poor rating of the current temperature and currents, plus overall health."""
        reading = await self.get_current_conditions()
        connected = self.connection_status().state == ConnectionState.CONNECTED
        return DataQuality.assess(reading, connected)

    # Current conditions

    async def get_current_conditions(self) -> Reading:
        reading = await self._cached("current_conditions", self.ttl["current_conditions"], self._load_current)
        if not reading.degraded:
            self._record_success()
        return reading

    async def _load_current(self) -> Tuple[Reading, bool]:
        results = await asyncio.gather(
            *(adapter.fetch() for adapter in self.adapters),
            return_exceptions=True
        )

        samples: List[Reading] = []
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(f"Source {adapter.name} failed: {result}")
                continue
            logger.debug(f"Source {adapter.name} returned {len(result)} samples")
            samples.extend(result)

        reading = self.normalizer.latest(
            samples,
            location=self.synthetic.location,
            depth=self.synthetic.depth
        )
        if reading is None:
            logger.error("All sources failed, serving simulated conditions")
            self._record_failure()
            return self.synthetic.reading(self.now()), False

        sources = {field: src for field, (src, _) in self.normalizer.field_sources(samples).items()}
        logger.info(f"Current conditions from {len(samples)} samples, field sources: {sources}")
        self._spawn(self.gateway.append(reading))
        return reading, True

    # History

    async def get_historical_readings(self, days: int = 7) -> List[Reading]:
        async def load() -> Tuple[List[Reading], bool]:
            now = self.now()
            readings = await self.gateway.query(
                now - timedelta(days=days),
                settings.history_limit,
                now=now
            )
            synthetic = bool(readings) and all(r.degraded for r in readings)
            return readings, not synthetic

        return await self._cached(f"historical:{days}", self.ttl["historical"], load)

    # Forecasts

    async def _model_forecast(self, kind: ForecastKind) -> Forecast:
        """Run the model over the trailing window, falling back on any failure."""
        now = self.now()
        try:
            readings = await self.gateway.query_strict(now - timedelta(days=self.model.window_days))
            return self.model.forecast_series(kind, readings, now)
        except Exception as e:
            logger.error(f"Error generating {kind.value} forecast: {str(e)}")
            return self.model.fallback(kind)

    async def get_forecast(self, kind: ForecastKind = ForecastKind.POPULATION) -> Forecast:
        """Forecast with per-point confidence decaying over the horizon."""
        async def load() -> Tuple[Forecast, bool]:
            forecast = await self._model_forecast(kind)
            return apply_horizon_decay(forecast, self.HORIZON_DECAY), not forecast.fallback

        return await self._cached(f"forecast:{kind.value}", self.ttl["forecast"], load)

    async def get_sardine_population(self) -> SardinePopulationEstimate:
        async def load() -> Tuple[SardinePopulationEstimate, bool]:
            forecast = await self.get_forecast(ForecastKind.POPULATION)
            now = self.now()
            trend = forecast.trend if forecast.trend is not None else 1.0
            midpoint = next((p for p in forecast.points if p.hours == 48), forecast.points[0])
            estimate = SardinePopulationEstimate(
                timestamp=now,
                population_estimate=int(midpoint.value),
                density=round(self.BASE_DENSITY * trend, 1),
                reproduction_rate=round(min(1.0, max(0.0, self.BASE_REPRODUCTION_RATE * trend)), 3),
                migration_pattern=MigrationDirection.for_month(now.month),
                area=settings.site["area"],
                confidence=forecast.confidence
            )
            if not forecast.fallback:
                self._spawn(self.gateway.append_estimate(estimate))
            return estimate, not forecast.fallback

        return await self._cached("sardine_population", self.ttl["sardine_population"], load)

    # Weather

    async def get_weather_snapshot(self) -> WeatherSnapshot:
        async def load() -> Tuple[WeatherSnapshot, bool]:
            try:
                return await self.weather_client.fetch_snapshot(), True
            except Exception as e:
                logger.warning(f"Weather feeds unavailable, serving simulated weather: {str(e)}")
                return self.synthetic.weather(self.now()), False

        return await self._cached("weather", self.ttl["weather"], load)

    # Anomalies

    async def detect_anomalies(
        self,
        readings: Optional[List[Reading]] = None,
        station_id: Optional[str] = None
    ) -> List[Anomaly]:
        """Anomalies on the latest of readings, or on current conditions when none are given."""
        if readings is None:
            readings = [await self.get_current_conditions()]
        return detect_anomalies(readings, station_id)

    # Refresh

    async def refresh(self) -> RefreshResult:
        """Invalidate every cache and re-run the fetches."""
        self._generation += 1
        await self.cache.clear()
        self._inflight.clear()

        try:
            current, weather, _ = await asyncio.gather(
                self.get_current_conditions(),
                self.get_weather_snapshot(),
                self.get_sardine_population()
            )
        except Exception as e:
            logger.error(f"Refresh failed: {str(e)}")
            return RefreshResult(success=False, refreshed_at=self.now(), degraded_sections=["all"])

        degraded = []
        if current.degraded:
            degraded.append("current_conditions")
        if weather.degraded:
            degraded.append("weather")

        result = RefreshResult(
            success=not current.degraded,
            refreshed_at=self.now(),
            degraded_sections=degraded
        )
        logger.info(f"Refresh complete: success={result.success}, degraded={degraded}")
        return result
