from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from luxora.api.dependencies import get_news_service
from luxora.core.errors import success_response
from luxora.core.logging import get_logger
from luxora.services.news_service import NewsService

logger = get_logger("cache_routes")

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.post("/clear")
async def clear_cache(service: NewsService = Depends(get_news_service)) -> JSONResponse:
    cleared = service.clear_cache()
    logger.info("Response cache cleared via API (%d entries)", cleared)
    return success_response({"cleared": cleared, "message": "Cache cleared successfully"})


@router.get("/status")
async def cache_status(service: NewsService = Depends(get_news_service)) -> JSONResponse:
    return success_response(service.cache_status())
