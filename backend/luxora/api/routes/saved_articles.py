from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from luxora.api.dependencies import get_auth_context, get_saved_store
from luxora.core.errors import NotFoundError, ValidationAppError, success_response
from luxora.models.news import Article, SaveArticleRequest
from luxora.services.auth import AuthContext
from luxora.services.normalizer import parse_published, placeholder_image_url
from luxora.services.saved_articles import SavedArticleStore

router = APIRouter(prefix="/api/saved-articles", tags=["saved-articles"])


def _caller(auth: Optional[AuthContext]) -> dict:
    if auth is None:
        return {"user_id": None, "access_token": None}
    return {"user_id": auth.user_id, "access_token": auth.access_token}


def _parse_article(payload: dict) -> Article:
    if not payload.get("id") or not payload.get("title"):
        raise ValidationAppError("Invalid article data", "INVALID_ARTICLE")
    data = {
        "source": "",
        **payload,
        "imageUrl": payload.get("imageUrl") or placeholder_image_url(str(payload["title"])),
        "publishedAt": parse_published(payload.get("publishedAt")),
    }
    try:
        return Article.model_validate(data)
    except ValidationError as exc:
        raise ValidationAppError(f"Invalid article data: {exc.errors()[0]['msg']}", "INVALID_ARTICLE")


@router.get("")
async def list_saved_articles(
    auth: Optional[AuthContext] = Depends(get_auth_context),
    store: SavedArticleStore = Depends(get_saved_store),
) -> JSONResponse:
    records = await store.get_all(**_caller(auth))
    return success_response(
        {
            "articles": [record.article.to_public() for record in records],
            "total": len(records),
        }
    )


@router.get("/{article_id:path}/status")
async def saved_status(
    article_id: str,
    auth: Optional[AuthContext] = Depends(get_auth_context),
    store: SavedArticleStore = Depends(get_saved_store),
) -> JSONResponse:
    saved = await store.is_saved(article_id, **_caller(auth))
    return success_response({"articleId": article_id, "saved": saved})


@router.get("/{article_id:path}")
async def get_saved_article(
    article_id: str,
    auth: Optional[AuthContext] = Depends(get_auth_context),
    store: SavedArticleStore = Depends(get_saved_store),
) -> JSONResponse:
    record = await store.get_by_id(article_id, **_caller(auth))
    if record is None:
        raise NotFoundError("Saved article not found")
    return success_response(record.to_public())


@router.post("")
async def save_article(
    body: SaveArticleRequest,
    auth: Optional[AuthContext] = Depends(get_auth_context),
    store: SavedArticleStore = Depends(get_saved_store),
) -> JSONResponse:
    article = _parse_article(body.article)
    record, created = await store.save(article, **_caller(auth))
    return success_response(
        {
            "article": record.article.to_public(),
            "created": created,
            "message": "Article saved successfully" if created else "Article already saved",
        },
        status_code=201 if created else 200,
    )


@router.delete("/{article_id:path}")
async def remove_article(
    article_id: str,
    auth: Optional[AuthContext] = Depends(get_auth_context),
    store: SavedArticleStore = Depends(get_saved_store),
) -> JSONResponse:
    await store.remove(article_id, **_caller(auth))
    return success_response({"articleId": article_id, "message": "Article removed successfully"})
