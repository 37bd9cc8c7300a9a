from __future__ import annotations

from fastapi import APIRouter

from . import (
    auth,
    cache,
    general,
    media,
    news,
    saved_articles,
    status,
)

router = APIRouter()
router.include_router(general.router)
router.include_router(news.router)
router.include_router(cache.router)
router.include_router(status.router)
router.include_router(media.router)
router.include_router(saved_articles.router)
router.include_router(auth.router)
