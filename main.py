from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime

from core.config import settings
from core.logging_config import setup_logging

from features.conditions.routes.conditions_routes import router as conditions_router
from features.conditions.services.aggregator import OceanDataAggregator

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("🚀 Starting Ocean Monitor API...")
    aggregator = OceanDataAggregator()
    app.state.aggregator = aggregator
    try:
        if settings.refresh_interval > 0:
            await aggregator.start()
        logger.info(
            f"✨ Monitoring {settings.site['name']} "
            f"(tide station {settings.tide_station_id}, buoy {settings.buoy_id})"
        )
        yield
    finally:
        logger.info("🔄 Shutting down API...")
        await aggregator.shutdown()
        logger.info("👋 API shutdown complete")

app = FastAPI(
    title="Ocean Monitor API",
    description="Live oceanographic conditions, history, forecasts and anomaly flags",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(conditions_router)

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    aggregator: OceanDataAggregator = app.state.aggregator
    return {
        "status": "healthy",
        "feeds": aggregator.connection_status().state.value,
        "next_refresh": aggregator.scheduler.get_next_run_time(),
        "time": datetime.now().isoformat()
    }

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5010))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info",
        workers=1
    )
