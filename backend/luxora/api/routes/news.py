from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from luxora.api.dependencies import get_news_service
from luxora.core.errors import ValidationAppError, sanitize_input, success_response
from luxora.services.news_service import DEFAULT_GOOGLE_NEWS_TOPIC, NewsService

router = APIRouter(prefix="/api", tags=["news"])

MAX_PAGE_SIZE = 100


def _check_page_size(page_size: int) -> None:
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationAppError(
            f"Page size must be between 1 and {MAX_PAGE_SIZE}", "INVALID_PAGE_SIZE"
        )


@router.get("/news")
async def get_news(
    category: Optional[str] = Query(default=None),
    country: str = Query(default="us"),
    page_size: int = Query(default=10, alias="pageSize"),
    q: Optional[str] = Query(default=None),
    service: NewsService = Depends(get_news_service),
) -> JSONResponse:
    """Top headlines, or a search when ``q`` is given."""
    _check_page_size(page_size)

    query = sanitize_input(q) if q else ""
    if query:
        batch = await service.search_batch(query, page_size)
    else:
        category = sanitize_input(category) if category else None
        batch = await service.get_headlines_batch(category, sanitize_input(country) or "us", page_size)
    return success_response(batch.to_public())


@router.get("/news/search")
async def search_news(
    q: str = Query(default=""),
    page_size: int = Query(default=10, alias="pageSize"),
    service: NewsService = Depends(get_news_service),
) -> JSONResponse:
    _check_page_size(page_size)
    query = sanitize_input(q)
    if not query:
        raise ValidationAppError("Query parameter 'q' is required", "MISSING_QUERY")
    batch = await service.search_batch(query, page_size)
    return success_response(batch.to_public())


@router.get("/google-news")
async def google_news(
    topic: str = Query(default=DEFAULT_GOOGLE_NEWS_TOPIC),
    service: NewsService = Depends(get_news_service),
) -> JSONResponse:
    topic = sanitize_input(topic) or DEFAULT_GOOGLE_NEWS_TOPIC
    articles = await service.fetch_google_news(topic)
    return success_response(
        {
            "topic": topic,
            "articles": [article.to_public() for article in articles],
            "total": len(articles),
        }
    )
