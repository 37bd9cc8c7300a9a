from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from luxora.api.dependencies import get_settings
from luxora.core.config import Settings
from luxora.core.errors import success_response
from luxora.database import check_db
from luxora.models.news import CANONICAL_CATEGORIES

router = APIRouter(tags=["general"])


@router.get("/")
async def read_root(app_settings: Settings = Depends(get_settings)) -> JSONResponse:
    return success_response(
        {
            "message": f"{app_settings.app_title} is running!",
            "version": app_settings.app_version,
            "docs": "/docs",
        }
    )


@router.get("/health")
async def health_check() -> JSONResponse:
    return success_response(
        {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
    )


@router.get("/categories")
async def get_categories() -> JSONResponse:
    return success_response({"categories": list(CANONICAL_CATEGORIES)})


def _configured(flag: bool) -> str:
    return "configured" if flag else "not_configured"


@router.get("/api/health")
async def service_health(
    request: Request, app_settings: Settings = Depends(get_settings)
) -> JSONResponse:
    """Report which upstreams are configured and whether local storage answers."""
    if app_settings.enable_database:
        database = "healthy" if await check_db(request.app.state.sessionmaker) else "unhealthy"
    else:
        database = "disabled"

    services = {
        "database": database,
        "newsApi": _configured(bool(app_settings.news_api_key)),
        "newsData": _configured(bool(app_settings.newsdata_api_key)),
        "oxylabs": _configured(app_settings.oxylabs_configured),
        "pexelsApi": _configured(bool(app_settings.pexels_api_key)),
        "supabase": _configured(app_settings.supabase_configured),
    }
    return success_response(
        {
            "status": "degraded" if database == "unhealthy" else "healthy",
            "services": services,
            "version": app_settings.app_version,
        }
    )
