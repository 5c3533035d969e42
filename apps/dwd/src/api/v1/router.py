from fastapi import APIRouter

from config import settings
from .dwd_router import router as dwd_router

router = APIRouter(prefix="/api/v1", tags=["v1"])
router.include_router(dwd_router)


@router.get("/health")
async def health():
    return {"status": "ok", "version": settings.app_version}


@router.get("/info")
async def info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "debug": settings.debug,
        "cors_origins": settings.cors_origins,
        "station_cache_ttl": settings.station_cache_ttl,
        "forecast_cache_ttl": settings.forecast_cache_ttl,
        "default_range_km": settings.default_range_km,
    }
