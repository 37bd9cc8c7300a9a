from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from luxora.api.dependencies import get_news_service
from luxora.core.errors import success_response
from luxora.services.news_service import NewsService

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/status")
async def usage_status(service: NewsService = Depends(get_news_service)) -> JSONResponse:
    """Per-source quota and throttling state."""
    return success_response(service.get_usage_stats())
