from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from luxora.api.dependencies import get_media_service
from luxora.core.errors import sanitize_input, success_response, validate_request_data
from luxora.services.media_enrichment import MediaEnrichmentService, MediaOptions

router = APIRouter(prefix="/api/media", tags=["media"])


@router.get("/fallback")
async def fallback_media(
    title: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    media_type: str = Query(default="photo", alias="type"),
    enabled: bool = Query(default=True),
    retry_count: int = Query(default=2, alias="retryCount", ge=0, le=5),
    retry_delay: float = Query(default=1.0, alias="retryDelay", ge=0, le=30),
    service: MediaEnrichmentService = Depends(get_media_service),
) -> JSONResponse:
    """Stock photo or video for an article whose own image failed to load."""
    title = sanitize_input(title)
    category = sanitize_input(category)
    validate_request_data({"title": title, "category": category}, ["title", "category"])

    options = MediaOptions(
        enabled=enabled,
        prefer_video=media_type == "video",
        retry_count=retry_count,
        retry_delay=retry_delay,
    )
    result = await service.find_media(title, category, options)
    return success_response(result.model_dump())
