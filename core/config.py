from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Any, Optional

class Settings(BaseSettings):
    """Application settings."""

    # NOAA CO-OPS (tides, currents, meteorological)
    coops_base_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    coops_products: List[str] = ["water_level", "currents", "met"]
    coops_weather_products: List[str] = ["air_temperature", "humidity", "air_pressure", "visibility"]
    coops_params: Dict[str, str] = {
        "date": "today",
        "time_zone": "gmt",
        "units": "metric",
        "format": "json"
    }
    tide_station_id: str = "9410170"  # San Diego, closest CO-OPS station to Ensenada
    coops_sample_limit: int = 24  # Samples kept per feed

    # NDBC settings
    ndbc_base_url: str = "https://www.ndbc.noaa.gov/data/realtime2/"
    buoy_id: str = "46050"
    buoy_row_limit: int = 24
    buoy_min_columns: int = 17

    request_timeout: int = 30

    # Monitoring site
    site: Dict[str, Any] = {
        "name": "Ensenada, B.C.",
        "lat": 31.8667,
        "lng": -116.6000,
        "depth": 1847,
        "area": "Ensenada Marine Reserve",
        "utc_offset_hours": -8
    }

    cache: Dict[str, Any] = {
        "enabled": True,
        "prefix": "ocean_monitor"
    }
    base_cache_ttl: int = 300  # 5 minutes

    # Connection health
    staleness_window: int = 120  # seconds without a successful update before disconnected
    refresh_interval: int = 30  # seconds between scheduled refreshes

    # Historical store
    store_url: Optional[str] = None  # PostgREST-style endpoint, in-memory store when unset
    store_table: str = "oceanographic_readings"
    sardine_table: str = "sardine_data"
    history_limit: int = 100
    forecast_window_days: int = 30

    # Normalizer
    bucket_minutes: int = 6  # CO-OPS reporting interval

    # Synthetic data
    fallback_seed: Optional[int] = None

    def get_cache_ttl(self) -> Dict[str, int]:
        """Get cache TTL values in seconds, all derived from the base TTL."""
        base = self.base_cache_ttl
        return {
            "current_conditions": base,        # 5 minutes
            "historical": base,                # 5 minutes
            "weather": base * 2,               # 10 minutes
            "sardine_population": base * 6,    # 30 minutes, population changes slowly
            "forecast": base * 6               # 30 minutes
        }

    model_config = SettingsConfigDict(
        env_prefix="ocean_",
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
