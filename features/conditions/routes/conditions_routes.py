from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request

from features.anomalies.models.anomaly_types import Anomaly
from features.common.models.reading_types import ConnectionStatus, DataQuality, Reading, RefreshResult
from features.conditions.services.aggregator import OceanDataAggregator
from features.forecast.models.forecast_types import Forecast, ForecastKind, SardinePopulationEstimate
from features.weather.models.weather_types import WeatherSnapshot
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/conditions",
    tags=["Conditions"]
)

def get_aggregator(request: Request) -> OceanDataAggregator:
    """Dependency to get the OceanDataAggregator instance."""
    return request.app.state.aggregator

@router.get(
    "/current",
    response_model=Reading,
    summary="Get current conditions",
    description="Returns the freshest merged reading from the tide station and buoy feeds"
)
async def get_current_conditions(
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> Reading:
    return await aggregator.get_current_conditions()

@router.get(
    "/history",
    response_model=List[Reading],
    summary="Get historical readings",
    description="Returns stored readings for the trailing window, most recent first"
)
async def get_historical_readings(
    days: int = Query(7, ge=1, le=90),
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> List[Reading]:
    return await aggregator.get_historical_readings(days)

@router.get(
    "/sardines",
    response_model=SardinePopulationEstimate,
    summary="Get sardine population estimate"
)
async def get_sardine_population(
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> SardinePopulationEstimate:
    return await aggregator.get_sardine_population()

@router.get(
    "/weather",
    response_model=WeatherSnapshot,
    summary="Get weather snapshot"
)
async def get_weather_snapshot(
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> WeatherSnapshot:
    return await aggregator.get_weather_snapshot()

@router.get(
    "/forecast/{kind}",
    response_model=Forecast,
    summary="Get a short-horizon forecast",
    description="Population, temperature or current forecast over the next 72 hours"
)
async def get_forecast(
    kind: ForecastKind,
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> Forecast:
    return await aggregator.get_forecast(kind)

@router.get(
    "/anomalies",
    response_model=List[Anomaly],
    summary="Get anomalies on current conditions"
)
async def get_anomalies(
    station_id: Optional[str] = None,
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> List[Anomaly]:
    return await aggregator.detect_anomalies(station_id=station_id)

@router.post(
    "/anomalies",
    response_model=List[Anomaly],
    summary="Evaluate anomalies on supplied readings"
)
async def evaluate_anomalies(
    readings: List[Reading],
    station_id: Optional[str] = None,
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> List[Anomaly]:
    return await aggregator.detect_anomalies(readings, station_id)

@router.get(
    "/status",
    response_model=ConnectionStatus,
    summary="Get live feed connectivity"
)
async def get_connection_status(
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> ConnectionStatus:
    return aggregator.connection_status()

@router.get(
    "/quality",
    response_model=DataQuality,
    summary="Get data quality summary",
    description="Rates current temperature and currents as good or poor and overall feed health as good or degraded"
)
async def get_data_quality(
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> DataQuality:
    return await aggregator.data_quality()

@router.post(
    "/refresh",
    response_model=RefreshResult,
    summary="Invalidate caches and refetch"
)
async def refresh(
    aggregator: OceanDataAggregator = Depends(get_aggregator)
) -> RefreshResult:
    result = await aggregator.refresh()
    if not result.success:
        logger.warning(f"Manual refresh degraded: {result.degraded_sections}")
    return result
