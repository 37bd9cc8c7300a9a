"""FastAPI dependencies that pull the lifespan-built services off ``app.state``."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from luxora.core.config import Settings
from luxora.services.auth import AuthContext, IdentityService
from luxora.services.media_enrichment import MediaEnrichmentService
from luxora.services.news_service import NewsService
from luxora.services.saved_articles import SavedArticleStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_news_service(request: Request) -> NewsService:
    return request.app.state.news_service


def get_media_service(request: Request) -> MediaEnrichmentService:
    return request.app.state.media_service


def get_saved_store(request: Request) -> SavedArticleStore:
    return request.app.state.saved_store


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity_service


async def get_auth_context(
    authorization: Optional[str] = Header(default=None),
    identity: IdentityService = Depends(get_identity_service),
) -> Optional[AuthContext]:
    """The signed-in caller, or ``None`` for anonymous requests."""
    return await identity.resolve(authorization)


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    return token.strip() if scheme.lower() == "bearer" and token.strip() else None
